"""Role → capability table and resource-aware authorization checks."""

from enum import Enum
from typing import Dict, FrozenSet, List, Union

from fastapi import Depends

from ..models.user import Role, User
from .errors import ForbiddenError
from .security import get_current_user


class Capability(str, Enum):
    # Admin only
    CREATE_COMPANY = "create-company"
    MANAGE_USERS = "manage-users"
    SET_ROLES = "set-roles"
    CONFIGURE_APPROVAL_RULES = "configure-approval-rules"
    VIEW_ALL_EXPENSES = "view-all-expenses"
    OVERRIDE_APPROVALS = "override-approvals"

    # Manager
    APPROVE_EXPENSES = "approve-expenses"
    REJECT_EXPENSES = "reject-expenses"
    VIEW_TEAM_EXPENSES = "view-team-expenses"
    ESCALATE_EXPENSES = "escalate-expenses"

    # Employee
    SUBMIT_EXPENSES = "submit-expenses"
    VIEW_OWN_EXPENSES = "view-own-expenses"
    CHECK_APPROVAL_STATUS = "check-approval-status"


_EMPLOYEE = frozenset({
    Capability.SUBMIT_EXPENSES,
    Capability.VIEW_OWN_EXPENSES,
    Capability.CHECK_APPROVAL_STATUS,
})

_MANAGER = _EMPLOYEE | frozenset({
    Capability.APPROVE_EXPENSES,
    Capability.REJECT_EXPENSES,
    Capability.VIEW_TEAM_EXPENSES,
    Capability.ESCALATE_EXPENSES,
})

_ADMIN = _MANAGER | frozenset({
    Capability.CREATE_COMPANY,
    Capability.MANAGE_USERS,
    Capability.SET_ROLES,
    Capability.CONFIGURE_APPROVAL_RULES,
    Capability.VIEW_ALL_EXPENSES,
    Capability.OVERRIDE_APPROVALS,
})

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: _ADMIN,
    Role.MANAGER: _MANAGER,
    Role.EMPLOYEE: _EMPLOYEE,
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def has_capability(role: Union[Role, str], capability: Union[Capability, str]) -> bool:
    """Pure lookup; unknown roles or capabilities are simply not granted."""
    role = _coerce(Role, role)
    capability = _coerce(Capability, capability)
    if role is None or capability is None:
        return False
    return capability in ROLE_CAPABILITIES[role]


def can_resolve(actor: User, owner: User) -> bool:
    """Whether ``actor`` may approve or reject an expense owned by ``owner``.

    Admins resolve anything; managers only their direct reports' expenses.
    """
    role = _coerce(Role, actor.role)
    if role == Role.ADMIN:
        return True
    if role == Role.MANAGER:
        return owner.manager_id is not None and owner.manager_id == actor.id
    return False


def can_view_expenses_of(actor: User, owner: User) -> bool:
    if actor.id == owner.id:
        return has_capability(actor.role, Capability.VIEW_OWN_EXPENSES)
    if has_capability(actor.role, Capability.VIEW_ALL_EXPENSES):
        return True
    return (
        has_capability(actor.role, Capability.VIEW_TEAM_EXPENSES)
        and owner.manager_id == actor.id
    )


def require_capability(capability: Capability):
    """Dependency factory: the authenticated user must hold ``capability``."""

    def _dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_capability(current_user.role, capability):
            raise ForbiddenError(f"Missing capability: {capability.value}")
        return current_user

    return _dependency


# Dashboard sections and the capability each one needs
_SECTIONS = [
    ("expenses", Capability.VIEW_OWN_EXPENSES),
    ("submit-expense", Capability.SUBMIT_EXPENSES),
    ("approvals", Capability.APPROVE_EXPENSES),
    ("users", Capability.MANAGE_USERS),
    ("approval-rules", Capability.CONFIGURE_APPROVAL_RULES),
    ("settings", Capability.CHECK_APPROVAL_STATUS),
]


def accessible_sections(role: Union[Role, str]) -> List[str]:
    if _coerce(Role, role) is None:
        return []
    return ["dashboard"] + [name for name, cap in _SECTIONS if has_capability(role, cap)]


def role_display_name(role: Union[Role, str]) -> str:
    return {
        Role.ADMIN: "Administrator",
        Role.MANAGER: "Manager",
        Role.EMPLOYEE: "Employee",
    }.get(_coerce(Role, role), "Unknown")
