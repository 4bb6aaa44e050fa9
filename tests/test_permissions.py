import uuid

import pytest

from expenseflow.core.permissions import (
    ROLE_CAPABILITIES,
    Capability,
    accessible_sections,
    can_resolve,
    can_view_expenses_of,
    has_capability,
    role_display_name,
)
from expenseflow.models.user import Role, User


def person(role, manager_id=None):
    return User(
        id=uuid.uuid4(),
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        name="Someone",
        role=role,
        manager_id=manager_id,
    )


def test_admin_holds_every_capability():
    for capability in Capability:
        assert has_capability(Role.ADMIN, capability)


@pytest.mark.parametrize("capability", list(Capability))
def test_roles_are_nested(capability):
    if has_capability(Role.EMPLOYEE, capability):
        assert has_capability(Role.MANAGER, capability)
    if has_capability(Role.MANAGER, capability):
        assert has_capability(Role.ADMIN, capability)


def test_employee_and_manager_capabilities():
    assert has_capability("employee", "submit-expenses")
    assert not has_capability("employee", "approve-expenses")
    assert has_capability("manager", "approve-expenses")
    assert has_capability("manager", "reject-expenses")
    assert not has_capability("manager", "manage-users")
    assert not has_capability("manager", "view-all-expenses")


@pytest.mark.parametrize(
    "role, capability",
    [
        ("auditor", "submit-expenses"),
        ("", "submit-expenses"),
        ("admin", "delete-everything"),
        ("ADMIN", "manage-users"),
    ],
)
def test_unknown_values_are_not_granted(role, capability):
    assert has_capability(role, capability) is False


def test_table_covers_every_role():
    assert set(ROLE_CAPABILITIES) == set(Role)


def test_can_resolve():
    admin = person(Role.ADMIN)
    manager = person(Role.MANAGER)
    report = person(Role.EMPLOYEE, manager_id=manager.id)
    stranger = person(Role.EMPLOYEE, manager_id=uuid.uuid4())
    unmanaged = person(Role.EMPLOYEE)

    assert can_resolve(admin, report)
    assert can_resolve(admin, stranger)
    assert can_resolve(manager, report)
    assert not can_resolve(manager, stranger)
    assert not can_resolve(manager, unmanaged)
    assert not can_resolve(report, report)


def test_can_view_expenses_of():
    admin = person(Role.ADMIN)
    manager = person(Role.MANAGER)
    report = person(Role.EMPLOYEE, manager_id=manager.id)
    stranger = person(Role.EMPLOYEE)

    assert can_view_expenses_of(report, report)
    assert can_view_expenses_of(manager, report)
    assert can_view_expenses_of(admin, stranger)
    assert not can_view_expenses_of(manager, stranger)
    assert not can_view_expenses_of(report, stranger)


def test_accessible_sections():
    assert accessible_sections(Role.EMPLOYEE) == ["dashboard", "expenses", "submit-expense", "settings"]
    assert "approvals" in accessible_sections(Role.MANAGER)
    assert "users" not in accessible_sections(Role.MANAGER)
    assert {"users", "approval-rules"} <= set(accessible_sections(Role.ADMIN))
    assert accessible_sections("guest") == []


def test_role_display_name():
    assert role_display_name(Role.ADMIN) == "Administrator"
    assert role_display_name("manager") == "Manager"
    assert role_display_name("guest") == "Unknown"
