"""
Tests for user account endpoints.
"""

NEW_USER = {
    "email": "jane.smith@clinic.com",
    "password": "changeme123",
    "user_type": "Staff",
    "first_name": "Jane",
    "last_name": "Smith",
}


def test_create_user_defaults_username_to_email(client, clinic_id):
    response = client.post("/api/v1/users", json={**NEW_USER, "clinic_id": clinic_id})
    assert response.status_code == 201
    user = response.json()
    assert user["username"] == "jane.smith@clinic.com"
    assert user["status"] == "active"
    assert "password" not in user and "password_hash" not in user


def test_create_user_short_password_is_rejected(client):
    response = client.post("/api/v1/users", json={**NEW_USER, "password": "short"})
    assert response.status_code == 422


def test_duplicate_email_returns_409(client):
    assert client.post("/api/v1/users", json=NEW_USER).status_code == 201
    response = client.post("/api/v1/users", json={**NEW_USER, "username": "someone-else"})
    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]


def test_get_update_delete_user(client):
    user = client.post("/api/v1/users", json=NEW_USER).json()

    response = client.get(f"/api/v1/users/{user['id']}")
    assert response.status_code == 200
    assert response.json()["email"] == NEW_USER["email"]

    response = client.put(f"/api/v1/users/{user['id']}", json={"phone": "555-0142", "last_name": "Jones"})
    assert response.status_code == 200
    assert response.json()["last_name"] == "Jones"
    assert response.json()["first_name"] == "Jane"

    assert client.delete(f"/api/v1/users/{user['id']}").status_code == 204
    assert client.get(f"/api/v1/users/{user['id']}").status_code == 404


def test_update_to_taken_username_returns_409(client, make_user):
    other = make_user()
    user = client.post("/api/v1/users", json=NEW_USER).json()
    response = client.put(f"/api/v1/users/{user['id']}", json={"username": other["username"]})
    assert response.status_code == 409


def test_role_name_is_joined(client, access_repo):
    role = access_repo.get_role_by_name("Nurse")
    created = client.post("/api/v1/users", json={**NEW_USER, "role_id": role["id"]}).json()
    listed = {u["id"]: u for u in client.get("/api/v1/users").json()}
    assert listed[created["id"]]["role_name"] == "Nurse"


def test_status_patch(client, make_user):
    user = make_user()
    response = client.patch(f"/api/v1/users/{user['id']}/status", json={"status": "inactive"})
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"

    bad = client.patch(f"/api/v1/users/{user['id']}/status", json={"status": "banned"})
    assert bad.status_code == 422


def test_list_filters(client, make_user):
    make_user(user_type="Doctor")
    make_user(user_type="Staff", status="inactive")

    doctors = client.get("/api/v1/users", params={"user_type": "Doctor"}).json()
    assert doctors and all(u["user_type"] == "Doctor" for u in doctors)

    inactive = client.get("/api/v1/users", params={"status": "inactive"}).json()
    assert [u["status"] for u in inactive] == ["inactive"]

    page = client.get("/api/v1/users", params={"limit": 1}).json()
    assert len(page) == 1


def test_unknown_user_returns_404(client):
    assert client.get("/api/v1/users/9999").status_code == 404
    assert client.delete("/api/v1/users/9999").status_code == 404
