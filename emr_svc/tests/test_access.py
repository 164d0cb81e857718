"""
Tests for roles, the module/operation catalog and grant management.
"""
import pytest

SEEDED_MODULES = {
    "User Management", "Clinic Management", "Patient Management", "Appointment Management",
    "Medical Records", "Billing", "Reports", "System Settings",
}


@pytest.fixture
def matrix(client):
    return client.get("/api/v1/access/modules-operations").json()


def _ids(matrix, module, *operations):
    row = next(r for r in matrix if r["module_name"] == module)
    return [op["module_operation_id"] for op in row["operations"] if op["operation_name"] in operations]


def test_seeded_roles(client):
    names = {r["name"] for r in client.get("/api/v1/access/roles").json()}
    assert {"SuperAdmin", "Doctor", "Nurse", "Receptionist", "Admin"} <= names


def test_role_crud(client):
    response = client.post("/api/v1/access/roles", json={"name": "Billing Clerk", "description": "Invoices"})
    assert response.status_code == 201
    role = response.json()
    assert role["is_practice_role"] is True

    assert client.post("/api/v1/access/roles", json={"name": "Billing Clerk"}).status_code == 409

    response = client.put(f"/api/v1/access/roles/{role['id']}", json={"description": "Invoices and claims"})
    assert response.json()["description"] == "Invoices and claims"

    assert client.delete(f"/api/v1/access/roles/{role['id']}").status_code == 204
    assert client.get(f"/api/v1/access/roles/{role['id']}").status_code == 404


def test_role_filter_by_practice_flag(client):
    client.post("/api/v1/access/roles", json={"name": "Auditor", "is_practice_role": False})
    system_roles = client.get("/api/v1/access/roles", params={"is_practice_role": False}).json()
    assert "Auditor" in [r["name"] for r in system_roles]
    assert all(r["is_practice_role"] is False for r in system_roles)


def test_matrix_covers_every_seeded_pair(matrix):
    assert {row["module_name"] for row in matrix} == SEEDED_MODULES
    assert all(len(row["operations"]) == 8 for row in matrix)


def test_new_module_and_operation_link(client):
    module = client.post("/api/v1/access/modules", json={"name": "Pharmacy"}).json()
    operation = client.post("/api/v1/access/operations", json={"name": "Dispense"}).json()
    assert client.post("/api/v1/access/modules", json={"name": "Pharmacy"}).status_code == 409

    body = {"module_id": module["id"], "operation_id": operation["id"]}
    response = client.post("/api/v1/access/module-operations", json=body)
    assert response.status_code == 201
    assert response.json()["module_name"] == "Pharmacy"
    assert response.json()["operation_name"] == "Dispense"

    assert client.post("/api/v1/access/module-operations", json=body).status_code == 409
    missing = client.post("/api/v1/access/module-operations", json={"module_id": 9999, "operation_id": operation["id"]})
    assert missing.status_code == 400


def test_role_grant_lifecycle(client, matrix):
    role = client.post("/api/v1/access/roles", json={"name": "Scheduler"}).json()
    base = f"/api/v1/access/roles/{role['id']}/permissions"
    ids = _ids(matrix, "Appointment Management", "Create", "Read", "Update")

    response = client.post(base, json={"module_operation_ids": ids})
    assert response.status_code == 200
    assert response.json() == {"owner_id": role["id"], "affected": 3, "total": 3}

    # Re-granting is ignored
    again = client.post(base, json={"module_operation_ids": ids[:1]}).json()
    assert again["affected"] == 0 and again["total"] == 3

    assert client.get(f"{base}/count").json()["count"] == 3

    removed = client.request("DELETE", base, json={"module_operation_ids": ids[:2]}).json()
    assert removed["affected"] == 2 and removed["total"] == 1

    replaced = client.put(base, json={"module_operation_ids": _ids(matrix, "Reports", "Read", "Export")}).json()
    assert replaced["total"] == 2
    names = {g["operation_name"] for g in client.get(base).json()}
    assert names == {"Read", "Export"}

    cleared = client.delete(f"{base}/all").json()
    assert cleared["affected"] == 2 and cleared["total"] == 0


def test_unknown_module_operation_ids_are_listed(client):
    role = client.post("/api/v1/access/roles", json={"name": "Ghost"}).json()
    response = client.post(f"/api/v1/access/roles/{role['id']}/permissions",
                           json={"module_operation_ids": [99998, 99999]})
    assert response.status_code == 400
    assert sorted(response.json()["context"]["missing_ids"]) == [99998, 99999]


def test_grants_for_unknown_owner_return_404(client, matrix):
    ids = _ids(matrix, "Billing", "Read")
    assert client.post("/api/v1/access/roles/9999/permissions", json={"module_operation_ids": ids}).status_code == 404
    assert client.get("/api/v1/access/users/9999/access").status_code == 404


def test_permission_check_combines_role_and_user_grants(client, matrix, make_user, access_repo):
    role = access_repo.get_role_by_name("Doctor")
    user = make_user(user_type="Doctor", role_id=role["id"])
    check = f"/api/v1/access/users/{user['id']}/check"

    params = {"module": "Medical Records", "operation": "Approve"}
    assert client.get(check, params=params).json()["allowed"] is False

    client.post(f"/api/v1/access/roles/{role['id']}/permissions",
                json={"module_operation_ids": _ids(matrix, "Medical Records", "Approve")})
    assert client.get(check, params=params).json()["allowed"] is True

    params = {"module": "Billing", "operation": "Export"}
    client.post(f"/api/v1/access/users/{user['id']}/access",
                json={"module_operation_ids": _ids(matrix, "Billing", "Export")})
    assert client.get(check, params=params).json() == {
        "user_id": user["id"], "module": "Billing", "operation": "Export", "allowed": True,
    }


def test_superadmin_is_always_allowed(client, superadmin):
    response = client.get(f"/api/v1/access/users/{superadmin.id}/check",
                          params={"module": "Anything", "operation": "Whatever"})
    assert response.json()["allowed"] is True
