"""
Tests for clinic configuration endpoints.
"""
import pytest

WEEKDAYS = {
    "monday": {"enabled": True, "start": "09:00", "end": "17:00", "break_start": "12:00", "break_end": "13:00"},
    "sunday": {"enabled": False},
}


@pytest.fixture
def location(client, clinic_id):
    response = client.post(f"/api/v1/clinics/{clinic_id}/locations", json={"name": "Main Campus", "hours": WEEKDAYS})
    assert response.status_code == 201
    return response.json()


def test_create_and_get_clinic(client):
    response = client.post("/api/v1/clinics", json={"name": "Downtown Family Practice", "type": "group"})
    assert response.status_code == 201
    clinic = response.json()
    assert clinic["type"] == "group"
    assert clinic["time_zone"] == "America/New_York"

    response = client.get(f"/api/v1/clinics/{clinic['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Downtown Family Practice"


def test_create_clinic_rejects_unknown_type(client):
    response = client.post("/api/v1/clinics", json={"name": "Odd Clinic", "type": "franchise"})
    assert response.status_code == 422


def test_list_clinics_includes_seeded_clinic(client):
    names = [c["name"] for c in client.get("/api/v1/clinics").json()]
    assert "EMR System Clinic" in names


def test_update_and_delete_clinic(client):
    clinic = client.post("/api/v1/clinics", json={"name": "Temp Clinic"}).json()

    response = client.put(f"/api/v1/clinics/{clinic['id']}", json={"phone": "555-0100"})
    assert response.status_code == 200
    assert response.json()["phone"] == "555-0100"
    assert response.json()["name"] == "Temp Clinic"

    assert client.delete(f"/api/v1/clinics/{clinic['id']}").status_code == 204
    assert client.get(f"/api/v1/clinics/{clinic['id']}").status_code == 404


def test_get_unknown_clinic_returns_404(client):
    response = client.get("/api/v1/clinics/9999")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


def test_settings_default_then_upsert(client, clinic_id):
    response = client.get(f"/api/v1/clinics/{clinic_id}/settings")
    assert response.status_code == 200
    defaults = response.json()
    assert defaults["primary_color"] == "#0066cc"
    assert defaults["reminder_hours"] == 24
    assert defaults["updated_at"] is None

    response = client.put(
        f"/api/v1/clinics/{clinic_id}/settings",
        json={"primary_color": "#112233", "accepted_insurances": ["Aetna"], "enable_voice": True},
    )
    assert response.status_code == 200
    saved = response.json()
    assert saved["primary_color"] == "#112233"
    assert saved["accepted_insurances"] == ["Aetna"]
    assert saved["enable_voice"] is True
    # Untouched fields keep their defaults
    assert saved["enable_sms"] is True


def test_location_crud(client, clinic_id, location):
    assert location["hours"]["monday"]["start"] == "09:00"

    listed = client.get(f"/api/v1/clinics/{clinic_id}/locations").json()
    assert [loc["id"] for loc in listed] == [location["id"]]

    response = client.put(f"/api/v1/clinics/locations/{location['id']}", json={"phone": "555-0199"})
    assert response.status_code == 200
    assert response.json()["phone"] == "555-0199"

    assert client.delete(f"/api/v1/clinics/locations/{location['id']}").status_code == 204
    assert client.get(f"/api/v1/clinics/locations/{location['id']}").status_code == 404


def test_location_hours_must_be_consistent(client, clinic_id):
    response = client.post(
        f"/api/v1/clinics/{clinic_id}/locations",
        json={"name": "Backwards", "hours": {"monday": {"enabled": True, "start": "17:00", "end": "09:00"}}},
    )
    assert response.status_code == 400


def test_location_services_active_filter(client, location):
    base = f"/api/v1/clinics/locations/{location['id']}/services"
    xray = client.post(base, json={"service_name": "X-Ray", "service_category": "Imaging"}).json()
    client.post(base, json={"service_name": "Retired", "is_active": False})

    assert len(client.get(base).json()) == 2
    active = client.get(base, params={"active_only": True}).json()
    assert [s["service_name"] for s in active] == ["X-Ray"]

    response = client.put(f"/api/v1/clinics/services/{xray['id']}", json={"is_active": False})
    assert response.json()["is_active"] is False
    assert client.delete(f"/api/v1/clinics/services/{xray['id']}").status_code == 204


def test_location_schedule_current_and_range(client, location):
    base = f"/api/v1/clinics/locations/{location['id']}/schedules"
    old = client.post(base, json={
        "schedule_name": "Winter", "weekly_schedule": WEEKDAYS,
        "effective_from": "2025-01-01", "effective_to": "2025-03-31",
    })
    assert old.status_code == 201
    newer = client.post(base, json={
        "schedule_name": "Spring", "weekly_schedule": WEEKDAYS, "effective_from": "2025-03-01",
    }).json()

    current = client.get(f"{base}/current", params={"date": "2025-03-15"})
    assert current.status_code == 200
    assert current.json()["id"] == newer["id"]

    in_range = client.get(f"{base}/range", params={"start": "2025-01-10", "end": "2025-02-01"}).json()
    assert [s["schedule_name"] for s in in_range] == ["Winter"]

    assert client.get(f"{base}/current", params={"date": "2024-06-01"}).status_code == 404


def test_location_schedule_rejects_inverted_window(client, location):
    response = client.post(f"/api/v1/clinics/locations/{location['id']}/schedules", json={
        "schedule_name": "Broken", "weekly_schedule": WEEKDAYS,
        "effective_from": "2025-05-01", "effective_to": "2025-04-01",
    })
    assert response.status_code == 400


def test_specialty_catalog_and_clinic_assignment(client, clinic_id):
    specialty = client.post("/api/v1/clinics/specialties", json={"name": "Cardiology"}).json()
    assert client.post("/api/v1/clinics/specialties", json={"name": "Cardiology"}).status_code == 409

    response = client.post(
        f"/api/v1/clinics/{clinic_id}/specialties",
        json={"specialty_id": specialty["id"], "is_primary": True},
    )
    assert response.status_code == 201
    assert response.json()[0]["specialty_name"] == "Cardiology"

    duplicate = client.post(f"/api/v1/clinics/{clinic_id}/specialties", json={"specialty_id": specialty["id"]})
    assert duplicate.status_code == 409

    assert client.delete(f"/api/v1/clinics/{clinic_id}/specialties/{specialty['id']}").status_code == 204
    assert client.get(f"/api/v1/clinics/{clinic_id}/specialties").json() == []


def test_insurance_catalog_and_clinic_acceptance(client, clinic_id):
    provider = client.post("/api/v1/clinics/insurance-providers", json={"name": "Blue Shield"}).json()
    response = client.post(f"/api/v1/clinics/{clinic_id}/insurances", json={"provider_id": provider["id"]})
    assert response.status_code == 201
    assert response.json()[0]["provider_name"] == "Blue Shield"

    assert client.post(f"/api/v1/clinics/{clinic_id}/insurances", json={"provider_id": 9999}).status_code == 404
    assert client.delete(f"/api/v1/clinics/{clinic_id}/insurances/{provider['id']}").status_code == 204


def test_user_location_primary_is_exclusive(client, clinic_id, make_user):
    user = make_user()
    first = client.post(f"/api/v1/clinics/{clinic_id}/locations", json={"name": "North"}).json()
    second = client.post(f"/api/v1/clinics/{clinic_id}/locations", json={"name": "South"}).json()

    a = client.post("/api/v1/clinics/user-locations",
                    json={"user_id": user["id"], "location_id": first["id"], "is_primary": True})
    assert a.status_code == 201
    client.post("/api/v1/clinics/user-locations", json={"user_id": user["id"], "location_id": second["id"]})

    response = client.put(f"/api/v1/clinics/user-locations/user/{user['id']}/primary/{second['id']}")
    assert response.status_code == 200
    primaries = [a["location_id"] for a in response.json() if a["is_primary"]]
    assert primaries == [second["id"]]


def test_user_location_access_follows_status(client, clinic_id, make_user):
    user = make_user()
    loc = client.post(f"/api/v1/clinics/{clinic_id}/locations", json={"name": "East"}).json()
    assignment = client.post("/api/v1/clinics/user-locations",
                             json={"user_id": user["id"], "location_id": loc["id"]}).json()

    check = {"user_id": user["id"], "location_id": loc["id"]}
    assert client.get("/api/v1/clinics/user-locations/check", params=check).json()["has_access"] is True

    response = client.patch(f"/api/v1/clinics/user-locations/{assignment['id']}/status",
                            json={"status": "transferred", "notes": "Moved to West"})
    assert response.json()["status"] == "transferred"
    assert client.get("/api/v1/clinics/user-locations/check", params=check).json()["has_access"] is False

    users = client.get(f"/api/v1/clinics/locations/{loc['id']}/users").json()
    assert [u["user_id"] for u in users] == [user["id"]]

    assert client.delete(f"/api/v1/clinics/user-locations/{assignment['id']}").status_code == 204
    assert client.get(f"/api/v1/clinics/user-locations/user/{user['id']}").json() == []


def test_duplicate_user_location_returns_409(client, clinic_id, make_user):
    user = make_user()
    loc = client.post(f"/api/v1/clinics/{clinic_id}/locations", json={"name": "West"}).json()
    body = {"user_id": user["id"], "location_id": loc["id"]}
    assert client.post("/api/v1/clinics/user-locations", json=body).status_code == 201
    assert client.post("/api/v1/clinics/user-locations", json=body).status_code == 409


def test_clinic_update_rejects_null_name(client, clinic_id):
    response = client.put(f"/api/v1/clinics/{clinic_id}", json={"name": None})
    assert response.status_code == 422
    assert client.get(f"/api/v1/clinics/{clinic_id}").json()["name"] == "EMR System Clinic"


@pytest.mark.parametrize("field", ["enable_sms", "reminder_hours", "primary_color", "accepted_insurances"])
def test_settings_reject_null_values(client, clinic_id, field):
    response = client.put(f"/api/v1/clinics/{clinic_id}/settings", json={field: None})
    assert response.status_code == 422
    assert field in response.text


def test_settings_accept_null_logo(client, clinic_id):
    response = client.put(f"/api/v1/clinics/{clinic_id}/settings", json={"practice_logo": None})
    assert response.status_code == 200
    assert response.json()["practice_logo"] is None


def test_location_records_reject_null_names(client, location):
    assert client.put(f"/api/v1/clinics/locations/{location['id']}", json={"name": None}).status_code == 422
    assert client.get(f"/api/v1/clinics/locations/{location['id']}").json()["name"] == "Main Campus"

    service = client.post(
        f"/api/v1/clinics/locations/{location['id']}/services", json={"service_name": "X-Ray"}
    ).json()
    response = client.put(f"/api/v1/clinics/services/{service['id']}", json={"service_name": None})
    assert response.status_code == 422

    schedule = client.post(f"/api/v1/clinics/locations/{location['id']}/schedules", json={
        "schedule_name": "Summer", "weekly_schedule": WEEKDAYS, "effective_from": "2025-06-01",
    }).json()
    for field in ("schedule_name", "effective_from", "weekly_schedule"):
        response = client.put(f"/api/v1/clinics/schedules/{schedule['id']}", json={field: None})
        assert response.status_code == 422, field
    # Clearing the optional end of the window is allowed
    response = client.put(f"/api/v1/clinics/schedules/{schedule['id']}", json={"effective_to": None})
    assert response.status_code == 200
