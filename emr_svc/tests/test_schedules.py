"""
Tests for weekly user schedules and their day slots.
"""
import pytest

WEEK = {
    "monday": {"enabled": True, "start": "09:00", "end": "11:00", "break_start": "10:00", "break_end": "10:30"},
    "tuesday": {"enabled": True, "start": "13:00", "end": "14:00"},
    "sunday": {"enabled": False},
}
MONDAY = "2025-03-17"
SUNDAY = "2025-03-16"


@pytest.fixture
def schedule_body(clinic_id, make_user):
    user = make_user(user_type="Doctor")
    return {
        "clinic_id": clinic_id, "user_id": user["id"], "user_type": "Doctor",
        "weekly_schedule": WEEK, "slot_duration": 30, "effective_from": "2025-01-01",
    }


@pytest.fixture
def schedule(client, schedule_body):
    response = client.post("/api/v1/schedules", json=schedule_body)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_get(client, schedule):
    assert schedule["weekly_schedule"]["monday"]["break_start"] == "10:00"
    assert schedule["is_active"] is True
    fetched = client.get(f"/api/v1/schedules/{schedule['id']}").json()
    assert fetched["weekly_schedule"]["sunday"]["enabled"] is False


def test_unknown_weekday_is_rejected(client, schedule_body):
    body = {**schedule_body, "weekly_schedule": {"funday": {"enabled": True, "start": "09:00", "end": "10:00"}}}
    assert client.post("/api/v1/schedules", json=body).status_code == 422


def test_slot_duration_must_be_supported(client, schedule_body):
    assert client.post("/api/v1/schedules", json={**schedule_body, "slot_duration": 25}).status_code == 422


def test_inconsistent_day_is_rejected(client, schedule_body):
    body = {**schedule_body, "weekly_schedule": {"monday": {"enabled": True, "start": "12:00", "end": "09:00"}}}
    response = client.post("/api/v1/schedules", json=body)
    assert response.status_code == 400
    assert response.json()["detail"].startswith("monday")


def test_enabled_day_needs_hours(client, schedule_body):
    body = {**schedule_body, "weekly_schedule": {"friday": {"enabled": True}}}
    assert client.post("/api/v1/schedules", json=body).status_code == 400


def test_inverted_effective_window_is_rejected(client, schedule_body):
    body = {**schedule_body, "effective_from": "2025-06-01", "effective_to": "2025-05-01"}
    assert client.post("/api/v1/schedules", json=body).status_code == 400


def test_day_slots_skip_break(client, schedule):
    response = client.get(f"/api/v1/schedules/{schedule['id']}/slots", params={"date": MONDAY})
    assert response.status_code == 200
    data = response.json()
    assert data["weekday"] == "monday"
    assert [s["start"] for s in data["slots"]] == ["09:00", "09:30", "10:30"]


def test_day_slots_follow_duration(client, schedule):
    client.put(f"/api/v1/schedules/{schedule['id']}", json={"slot_duration": 15})
    slots = client.get(f"/api/v1/schedules/{schedule['id']}/slots", params={"date": "2025-03-18"}).json()["slots"]
    assert [s["start"] for s in slots] == ["13:00", "13:15", "13:30", "13:45"]


def test_disabled_day_and_out_of_window_dates_have_no_slots(client, schedule):
    url = f"/api/v1/schedules/{schedule['id']}/slots"
    assert client.get(url, params={"date": SUNDAY}).json()["slots"] == []
    assert client.get(url, params={"date": "2024-12-30"}).json()["slots"] == []


def test_active_schedules_on_date(client, schedule, schedule_body):
    client.put(f"/api/v1/schedules/{schedule['id']}", json={"effective_to": "2025-02-28"})
    later = client.post("/api/v1/schedules", json={**schedule_body, "effective_from": "2025-03-01"}).json()

    active = client.get("/api/v1/schedules/active", params={"date": "2025-03-10"}).json()
    assert [s["id"] for s in active] == [later["id"]]
    active = client.get("/api/v1/schedules/active", params={"date": "2025-02-10"}).json()
    assert [s["id"] for s in active] == [schedule["id"]]


def test_inactive_schedule_is_not_in_effect(client, schedule):
    client.put(f"/api/v1/schedules/{schedule['id']}", json={"is_active": False})
    assert client.get("/api/v1/schedules/active", params={"date": MONDAY}).json() == []


def test_list_filters_and_delete(client, schedule, schedule_body):
    mine = client.get("/api/v1/schedules", params={"user_id": schedule_body["user_id"]}).json()
    assert [s["id"] for s in mine] == [schedule["id"]]
    assert client.get("/api/v1/schedules", params={"user_type": "Nurse"}).json() == []

    assert client.delete(f"/api/v1/schedules/{schedule['id']}").status_code == 204
    assert client.get(f"/api/v1/schedules/{schedule['id']}").status_code == 404


def test_my_schedules_need_only_a_login(anon_client, login, make_user, clinic_id, access_repo):
    user = make_user(user_type="Nurse")
    headers = login(user["email"], "password123")

    # No grants: managing schedules is forbidden
    body = {
        "clinic_id": clinic_id, "user_id": user["id"], "user_type": "Nurse",
        "weekly_schedule": WEEK, "effective_from": "2000-01-01",
    }
    assert anon_client.post("/api/v1/schedules", json=body, headers=headers).status_code == 403

    admin = login("superadmin@emr.com", "superadmin123")
    created = anon_client.post("/api/v1/schedules", json=body, headers=admin)
    assert created.status_code == 201

    mine = anon_client.get("/api/v1/schedules/my/all", headers=headers)
    assert mine.status_code == 200
    assert [s["id"] for s in mine.json()] == [created.json()["id"]]
    active = anon_client.get("/api/v1/schedules/my/active", headers=headers).json()
    assert [s["id"] for s in active] == [created.json()["id"]]
