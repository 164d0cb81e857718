"""
Tests for staff member endpoints.
"""
import pytest


@pytest.fixture
def new_staff(clinic_id):
    counter = {"n": 0}

    def _payload(**overrides):
        counter["n"] += 1
        body = {
            "email": f"staff{counter['n']}@clinic.com",
            "password": "changeme123",
            "first_name": "Sam",
            "last_name": f"Jones{counter['n']}",
            "clinic_id": clinic_id,
            "employee_id": f"EMP-{counter['n']:04d}",
            "department": "Reception",
        }
        body.update(overrides)
        return body

    return _payload


def test_create_staff_creates_login(client, new_staff, anon_client):
    response = client.post("/api/v1/staff", json=new_staff())
    assert response.status_code == 201
    staff = response.json()
    assert staff["employment_status"] == "Full-time"
    assert staff["username"] == staff["email"]

    user = client.get(f"/api/v1/users/{staff['user_id']}").json()
    assert user["user_type"] == "Staff"
    login = anon_client.post("/api/v1/auth/login", json={"email": staff["email"], "password": "changeme123"})
    assert login.status_code == 200


def test_duplicate_employee_id_returns_409(client, new_staff):
    client.post("/api/v1/staff", json=new_staff(employee_id="EMP-7"))
    response = client.post("/api/v1/staff", json=new_staff(employee_id="EMP-7"))
    assert response.status_code == 409
    assert "employee_id" in response.json()["detail"]


def test_duplicate_email_returns_409(client, new_staff):
    client.post("/api/v1/staff", json=new_staff(email="same@clinic.com"))
    assert client.post("/api/v1/staff", json=new_staff(email="same@clinic.com")).status_code == 409


def test_unknown_department_is_rejected(client, new_staff):
    assert client.post("/api/v1/staff", json=new_staff(department="Kitchen")).status_code == 422


def test_update_staff_fields_and_user(client, new_staff):
    staff = client.post("/api/v1/staff", json=new_staff()).json()
    response = client.put(f"/api/v1/staff/{staff['id']}", json={
        "department": "Nursing", "first_name": "Samantha", "hourly_rate": 31.5,
    })
    assert response.status_code == 200
    updated = response.json()
    assert updated["department"] == "Nursing"
    assert updated["first_name"] == "Samantha"
    assert updated["hourly_rate"] == 31.5


def test_terminated_staff_cannot_log_in(client, new_staff, anon_client):
    staff = client.post("/api/v1/staff", json=new_staff()).json()
    client.put(f"/api/v1/staff/{staff['id']}", json={"status": "terminated"})

    assert client.get(f"/api/v1/users/{staff['user_id']}").json()["status"] == "inactive"
    login = anon_client.post("/api/v1/auth/login", json={"email": staff["email"], "password": "changeme123"})
    assert login.status_code == 401


def test_list_filters(client, new_staff):
    client.post("/api/v1/staff", json=new_staff(department="Nursing"))
    client.post("/api/v1/staff", json=new_staff(department="Reception", status="inactive"))

    nursing = client.get("/api/v1/staff", params={"department": "Nursing"}).json()
    assert [s["department"] for s in nursing] == ["Nursing"]
    inactive = client.get("/api/v1/staff", params={"status": "inactive"}).json()
    assert len(inactive) == 1


def test_stats(client, new_staff, clinic_id):
    client.post("/api/v1/staff", json=new_staff(department="Nursing"))
    client.post("/api/v1/staff", json=new_staff(department="Nursing"))
    client.post("/api/v1/staff", json=new_staff(department="Medical", status="terminated"))

    stats = client.get("/api/v1/staff/stats", params={"clinic_id": clinic_id}).json()
    assert stats["total"] == 3
    assert stats["active"] == 2
    assert stats["inactive"] == 1
    assert stats["by_department"] == {"Medical": 1, "Nursing": 2}


def test_supervisors_exclude_self_and_inactive(client, new_staff, clinic_id):
    boss = client.post("/api/v1/staff", json=new_staff()).json()
    worker = client.post("/api/v1/staff", json=new_staff(supervisor_id=boss["id"])).json()
    client.post("/api/v1/staff", json=new_staff(status="inactive"))

    supervisors = client.get("/api/v1/staff/supervisors",
                             params={"clinic_id": clinic_id, "exclude_staff_id": worker["id"]}).json()
    assert [s["id"] for s in supervisors] == [boss["id"]]


def test_delete_supervisor_clears_reference(client, new_staff):
    boss = client.post("/api/v1/staff", json=new_staff()).json()
    worker = client.post("/api/v1/staff", json=new_staff(supervisor_id=boss["id"])).json()

    assert client.delete(f"/api/v1/staff/{boss['id']}").status_code == 204
    assert client.get(f"/api/v1/staff/{worker['id']}").json()["supervisor_id"] is None
    assert client.get(f"/api/v1/users/{boss['user_id']}").status_code == 404
