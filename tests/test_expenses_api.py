"""Tests for the /expenses routes."""

import uuid

import pytest


def expense_body(user_id=None, items=None, description="Client visit"):
    body = {
        "description": description,
        "items": items if items is not None else [
            {"amount": 350, "date": "2024-01-15", "description": "Hotel", "category": "Accommodation", "currency": "INR"},
            {"amount": 100, "date": "2024-01-15", "description": "Taxi", "category": "Transportation", "currency": "INR"},
        ],
        "receipts": [{"filePath": "receipts/hotel.jpg"}],
    }
    if user_id is not None:
        body["userId"] = str(user_id)
    return body


def submit(client, headers, **kwargs):
    resp = client.post("/expenses", json=expense_body(**kwargs), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def resolve(client, user, expense_id, status, headers, comments=None):
    body = {"status": status, "approverId": str(user.id), "approverName": user.name}
    if comments is not None:
        body["comments"] = comments
    return client.patch(f"/expenses/{expense_id}/status", json=body, headers=headers)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_requires_authentication(client):
    resp = client.get("/expenses")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


def test_submit_and_approve_scenario(client, employee, manager, headers_for):
    created = submit(client, headers_for(employee))

    assert created["userId"] == str(employee.id)
    assert created["totalAmount"] == 450
    assert created["currency"] == "INR"
    assert created["status"] == "pending"
    assert [i["amount"] for i in created["items"]] == [350, 100]
    assert created["items"][0]["date"] == "2024-01-15"
    assert created["receipts"][0]["filePath"] == "receipts/hotel.jpg"
    assert created["approvalActions"] == []

    resp = resolve(client, manager, created["id"], "approved", headers_for(manager), comments="ok")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "status": "approved"}

    detail = client.get(f"/expenses/{created['id']}", headers=headers_for(employee)).json()
    assert detail["status"] == "approved"
    assert len(detail["approvalActions"]) == 1
    action = detail["approvalActions"][0]
    assert action["actionType"] == "approved"
    assert action["userId"] == str(manager.id)
    assert action["userName"] == "Manager User"
    assert action["comments"] == "ok"

    again = resolve(client, manager, created["id"], "rejected", headers_for(manager))
    assert again.status_code == 409
    detail = client.get(f"/expenses/{created['id']}", headers=headers_for(employee)).json()
    assert len(detail["approvalActions"]) == 1


def test_submit_validation(client, employee, headers_for):
    resp = client.post("/expenses", json=expense_body(items=[]), headers=headers_for(employee))
    assert resp.status_code == 400

    bad_amount = [{"amount": 0, "date": "2024-01-15", "description": "Free", "category": "Meals", "currency": "INR"}]
    resp = client.post("/expenses", json=expense_body(items=bad_amount), headers=headers_for(employee))
    assert resp.status_code == 400

    sub_cent = [{"amount": 0.001, "date": "2024-01-15", "description": "Gum", "category": "Meals", "currency": "INR"}]
    resp = client.post("/expenses", json=expense_body(items=sub_cent), headers=headers_for(employee))
    assert resp.status_code == 400

    bad_date = [{"amount": 5, "date": "not-a-date", "description": "Lunch", "category": "Meals", "currency": "INR"}]
    resp = client.post("/expenses", json=expense_body(items=bad_date), headers=headers_for(employee))
    assert resp.status_code == 422


def test_employee_cannot_submit_for_someone_else(client, employee, outsider, headers_for):
    resp = client.post("/expenses", json=expense_body(user_id=outsider.id), headers=headers_for(employee))
    assert resp.status_code == 403


def test_admin_submits_for_unknown_user(client, admin, headers_for):
    resp = client.post("/expenses", json=expense_body(user_id=uuid.uuid4()), headers=headers_for(admin))
    assert resp.status_code == 400


def test_employee_cannot_resolve(client, employee, headers_for):
    created = submit(client, headers_for(employee))
    resp = resolve(client, employee, created["id"], "approved", headers_for(employee))
    assert resp.status_code == 403


def test_employee_cannot_set_any_status(client, employee, admin, headers_for):
    created = submit(client, headers_for(employee))
    for status in ("pending", "approved", "rejected"):
        resp = resolve(client, employee, created["id"], status, headers_for(employee))
        assert resp.status_code == 403, status

    resp = resolve(client, admin, created["id"], "pending", headers_for(admin))
    assert resp.status_code == 400


def test_manager_cannot_resolve_outside_team(client, outsider, manager, headers_for):
    created = submit(client, headers_for(outsider))
    resp = resolve(client, manager, created["id"], "approved", headers_for(manager))
    assert resp.status_code == 403

    detail = client.get(f"/expenses/{created['id']}", headers=headers_for(outsider)).json()
    assert detail["status"] == "pending"
    assert detail["approvalActions"] == []


def test_approver_id_must_match_caller(client, employee, manager, admin, headers_for):
    created = submit(client, headers_for(employee))
    body = {"status": "approved", "approverId": str(admin.id), "approverName": "Admin User"}
    resp = client.patch(f"/expenses/{created['id']}/status", json=body, headers=headers_for(manager))
    assert resp.status_code == 403


def test_resolve_unknown_expense(client, admin, headers_for):
    resp = resolve(client, admin, uuid.uuid4(), "approved", headers_for(admin))
    assert resp.status_code == 404


@pytest.mark.parametrize("status", ["pending", "archived"])
def test_resolve_rejects_bad_status(client, employee, admin, headers_for, status):
    created = submit(client, headers_for(employee))
    resp = resolve(client, admin, created["id"], status, headers_for(admin))
    assert resp.status_code in (400, 422)


def test_pending_queue_for_admin(client, employee, outsider, manager, other_manager, admin, headers_for):
    pending = submit(client, headers_for(employee), description="Pending")
    approved = submit(client, headers_for(outsider), description="Approved")
    rejected = submit(client, headers_for(employee), description="Rejected")
    assert resolve(client, other_manager, approved["id"], "approved", headers_for(other_manager)).status_code == 200
    assert resolve(client, manager, rejected["id"], "rejected", headers_for(manager)).status_code == 200

    queue = client.get("/expenses/pending", headers=headers_for(admin)).json()
    assert [e["id"] for e in queue] == [pending["id"]]


def test_pending_queue_for_manager_and_employee(client, employee, outsider, manager, headers_for):
    mine = submit(client, headers_for(employee))
    submit(client, headers_for(outsider))

    queue = client.get("/expenses/pending", headers=headers_for(manager)).json()
    assert [e["id"] for e in queue] == [mine["id"]]

    assert client.get("/expenses/pending", headers=headers_for(employee)).json() == []


def test_user_expense_history_visibility(client, employee, outsider, manager, admin, headers_for):
    first = submit(client, headers_for(employee), description="First")
    second = submit(client, headers_for(employee), description="Second")
    submit(client, headers_for(outsider))

    own = client.get(f"/expenses/user/{employee.id}", headers=headers_for(employee)).json()
    assert [e["id"] for e in own] == [second["id"], first["id"]]

    assert client.get(f"/expenses/user/{employee.id}", headers=headers_for(manager)).status_code == 200
    assert client.get(f"/expenses/user/{employee.id}", headers=headers_for(admin)).status_code == 200
    assert client.get(f"/expenses/user/{employee.id}", headers=headers_for(outsider)).status_code == 403
    assert client.get(f"/expenses/user/{uuid.uuid4()}", headers=headers_for(admin)).status_code == 404


def test_expense_detail_visibility(client, employee, outsider, headers_for):
    created = submit(client, headers_for(employee))
    assert client.get(f"/expenses/{created['id']}", headers=headers_for(outsider)).status_code == 403
    assert client.get(f"/expenses/{uuid.uuid4()}", headers=headers_for(employee)).status_code == 404


def test_list_expenses_scoped_by_role(client, employee, outsider, manager, admin, headers_for):
    team = submit(client, headers_for(employee))
    other = submit(client, headers_for(outsider))

    def ids(user):
        return {e["id"] for e in client.get("/expenses", headers=headers_for(user)).json()}

    assert ids(admin) == {team["id"], other["id"]}
    assert ids(manager) == {team["id"]}
    assert ids(employee) == {team["id"]}
    assert ids(outsider) == {other["id"]}
