"""
Tests for login, bearer token authentication and permission enforcement.

These use the `anon_client` fixture, so every request goes through real
JWT decoding and the role/user grant checks.
"""
from datetime import timedelta

from core.datetime_utils import format_iso, utc_now
from core.security import TokenPayload
from conftest import SUPERADMIN_PASSWORD

SUPERADMIN_EMAIL = "superadmin@emr.com"


def _module_operation_id(client, headers, module, operation):
    matrix = client.get("/api/v1/access/modules-operations", headers=headers).json()
    for row in matrix:
        if row["module_name"] == module:
            for op in row["operations"]:
                if op["operation_name"] == operation:
                    return op["module_operation_id"]
    raise AssertionError(f"{module}/{operation} not in matrix")


def test_login_success(anon_client):
    response = anon_client.post("/api/v1/auth/login", json={"email": SUPERADMIN_EMAIL, "password": SUPERADMIN_PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 3600
    assert data["is_super_admin"] is True
    assert data["user"]["email"] == SUPERADMIN_EMAIL
    assert "password_hash" not in data["user"]


def test_login_remember_me_extends_lifetime(anon_client):
    response = anon_client.post(
        "/api/v1/auth/login",
        json={"email": SUPERADMIN_EMAIL, "password": SUPERADMIN_PASSWORD, "remember_me": True},
    )
    assert response.json()["expires_in"] == 30 * 24 * 3600


def test_login_wrong_password_and_unknown_email_look_the_same(anon_client):
    wrong = anon_client.post("/api/v1/auth/login", json={"email": SUPERADMIN_EMAIL, "password": "nope"})
    unknown = anon_client.post("/api/v1/auth/login", json={"email": "ghost@clinic.com", "password": "nope"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["detail"] == unknown.json()["detail"] == "Invalid credentials"


def test_login_deactivated_account(anon_client, make_user):
    user = make_user(status="inactive")
    response = anon_client.post("/api/v1/auth/login", json={"email": user["email"], "password": "password123"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Account is deactivated"


def test_protected_route_requires_token(anon_client):
    response = anon_client.get("/api/v1/users")
    assert response.status_code == 401


def test_garbage_token_is_rejected(anon_client):
    response = anon_client.get("/api/v1/users", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_token_for_deleted_user_is_rejected(anon_client, token_manager):
    token = token_manager.create(TokenPayload(user_id=9999, email="x@clinic.com", username="x",
                                              user_type="Staff", clinic_id=None))
    response = anon_client.get("/api/v1/auth/verify-token", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_verify_token_lists_permissions(anon_client, login):
    headers = login(SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD)
    response = anon_client.get("/api/v1/auth/verify-token", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["is_super_admin"] is True
    # The SuperAdmin role is granted every module-operation by the seed
    assert len(data["permissions"]) == 8 * 8


def test_deactivation_invalidates_existing_token(anon_client, login, make_user):
    user = make_user()
    headers = login(user["email"], "password123")
    assert anon_client.get("/api/v1/auth/verify-token", headers=headers).status_code == 200

    admin = login(SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD)
    anon_client.patch(f"/api/v1/users/{user['id']}/status", json={"status": "inactive"}, headers=admin)

    response = anon_client.get("/api/v1/auth/verify-token", headers=headers)
    assert response.status_code == 401
    assert response.json()["detail"] == "Account is deactivated"


def test_logout_acknowledges(anon_client, login):
    headers = login(SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD)
    response = anon_client.post("/api/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"


def test_role_grant_allows_read_but_not_create(anon_client, login, make_user, access_repo):
    role = access_repo.get_role_by_name("Receptionist")
    user = make_user(role_id=role["id"])
    headers = login(user["email"], "password123")
    admin = login(SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD)

    assert anon_client.get("/api/v1/patients", headers=headers).status_code == 403

    read_id = _module_operation_id(anon_client, admin, "Patient Management", "Read")
    response = anon_client.post(
        f"/api/v1/access/roles/{role['id']}/permissions",
        json={"module_operation_ids": [read_id]},
        headers=admin,
    )
    assert response.status_code == 200

    assert anon_client.get("/api/v1/patients", headers=headers).status_code == 200
    denied = anon_client.post(
        "/api/v1/patients",
        json={"email": "pat@clinic.com", "password": "password123", "first_name": "P", "last_name": "Q"},
        headers=headers,
    )
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Permission denied: Create on Patient Management"


def test_direct_user_grant(anon_client, login, make_user):
    user = make_user()
    headers = login(user["email"], "password123")
    admin = login(SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD)

    read_id = _module_operation_id(anon_client, admin, "Appointment Management", "Read")
    anon_client.post(f"/api/v1/access/users/{user['id']}/access",
                     json={"module_operation_ids": [read_id]}, headers=admin)

    assert anon_client.get("/api/v1/appointments", headers=headers).status_code == 200
    assert anon_client.get("/api/v1/users", headers=headers).status_code == 403


def test_tasks_need_only_authentication(anon_client, login, make_user):
    user = make_user()
    headers = login(user["email"], "password123")
    response = anon_client.post("/api/v1/tasks", json={"title": "Restock gloves"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["created_by"] == user["id"]


def test_forgot_password_does_not_reveal_accounts(anon_client, notifier):
    known = anon_client.post("/api/v1/auth/forgot-password", json={"email": SUPERADMIN_EMAIL})
    unknown = anon_client.post("/api/v1/auth/forgot-password", json={"email": "ghost@clinic.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [r["email"] for r in notifier.resets] == [SUPERADMIN_EMAIL]


def test_reset_password_flow(anon_client, notifier, make_user):
    user = make_user()
    anon_client.post("/api/v1/auth/forgot-password", json={"email": user["email"]})
    token = notifier.resets[-1]["token"]

    response = anon_client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert response.status_code == 200

    # Tokens are single use
    again = anon_client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "another-pass"})
    assert again.status_code == 400

    old = anon_client.post("/api/v1/auth/login", json={"email": user["email"], "password": "password123"})
    new = anon_client.post("/api/v1/auth/login", json={"email": user["email"], "password": "brand-new-pass"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_reset_password_unknown_token(anon_client):
    response = anon_client.post("/api/v1/auth/reset-password", json={"token": "deadbeef", "new_password": "whatever123"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired reset token"


def test_expired_reset_token_is_rejected(anon_client, user_repo, make_user):
    user = make_user()
    past = format_iso(utc_now() - timedelta(minutes=1))
    user_repo.create_reset_token(user["id"], "stale-token", past)

    response = anon_client.post(
        "/api/v1/auth/reset-password", json={"token": "stale-token", "new_password": "brand-new-pass"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired reset token"

    login = anon_client.post("/api/v1/auth/login", json={"email": user["email"], "password": "password123"})
    assert login.status_code == 200


def test_new_reset_request_invalidates_earlier_token(anon_client, notifier, make_user):
    user = make_user()
    anon_client.post("/api/v1/auth/forgot-password", json={"email": user["email"]})
    anon_client.post("/api/v1/auth/forgot-password", json={"email": user["email"]})
    first, second = (r["token"] for r in notifier.resets)
    assert first != second

    stale = anon_client.post("/api/v1/auth/reset-password", json={"token": first, "new_password": "brand-new-pass"})
    assert stale.status_code == 400

    fresh = anon_client.post("/api/v1/auth/reset-password", json={"token": second, "new_password": "brand-new-pass"})
    assert fresh.status_code == 200
