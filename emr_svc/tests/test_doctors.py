"""
Tests for doctor profiles, weekly working hours and time off.
"""
import pytest

MONDAY = 1


@pytest.fixture
def doctor(client, clinic_id):
    response = client.post("/api/v1/doctors", json={
        "clinic_id": clinic_id,
        "specialty": "Cardiology",
        "license_number": "MD-1001",
        "user": {"email": "dr.lee@clinic.com", "password": "password123", "first_name": "Alex", "last_name": "Lee"},
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_create_doctor_with_new_user(client, doctor):
    assert doctor["email"] == "dr.lee@clinic.com"
    assert doctor["first_name"] == "Alex"
    user = client.get(f"/api/v1/users/{doctor['user_id']}").json()
    assert user["user_type"] == "Doctor"


def test_create_doctor_for_existing_user(client, make_user, clinic_id):
    user = make_user(user_type="Doctor")
    response = client.post("/api/v1/doctors", json={"user_id": user["id"], "clinic_id": clinic_id})
    assert response.status_code == 201
    assert response.json()["user_id"] == user["id"]

    again = client.post("/api/v1/doctors", json={"user_id": user["id"]})
    assert again.status_code == 409


def test_create_doctor_needs_exactly_one_user_source(client, make_user):
    user = make_user()
    both = {"user_id": user["id"], "user": {"email": "x@clinic.com", "password": "password123"}}
    assert client.post("/api/v1/doctors", json=both).status_code == 422
    assert client.post("/api/v1/doctors", json={"specialty": "Dermatology"}).status_code == 422


def test_list_doctors_by_specialty(client, doctor, make_user):
    other = make_user(user_type="Doctor")
    client.post("/api/v1/doctors", json={"user_id": other["id"], "specialty": "Pediatrics"})

    cardiologists = client.get("/api/v1/doctors", params={"specialty": "Cardiology"}).json()
    assert [d["id"] for d in cardiologists] == [doctor["id"]]
    assert len(client.get("/api/v1/doctors").json()) == 2


def test_update_and_delete_doctor(client, doctor):
    response = client.put(f"/api/v1/doctors/{doctor['id']}", json={"specialty": "Neurology"})
    assert response.status_code == 200
    assert response.json()["specialty"] == "Neurology"
    assert response.json()["license_number"] == "MD-1001"

    assert client.delete(f"/api/v1/doctors/{doctor['id']}").status_code == 204
    assert client.get(f"/api/v1/doctors/{doctor['id']}").status_code == 404


def test_working_hours_and_availability(client, doctor):
    base = f"/api/v1/doctors/{doctor['id']}"
    response = client.post(f"{base}/schedules", json={
        "day_of_week": MONDAY, "start_time": "09:00", "end_time": "17:00",
        "break_start": "12:00", "break_end": "13:00",
    })
    assert response.status_code == 201
    schedule = response.json()

    def available(day, time):
        return client.get(f"{base}/availability", params={"day_of_week": day, "time": time}).json()["available"]

    assert available(MONDAY, "10:30") is True
    assert available(MONDAY, "12:15") is False
    assert available(MONDAY, "13:00") is True
    assert available(MONDAY, "17:00") is True
    assert available(MONDAY, "17:30") is False
    assert available(2, "10:30") is False

    client.put(f"/api/v1/doctors/schedules/{schedule['id']}", json={"is_active": False})
    assert available(MONDAY, "10:30") is False


def test_working_hours_validation(client, doctor):
    base = f"/api/v1/doctors/{doctor['id']}/schedules"
    inverted = client.post(base, json={"day_of_week": MONDAY, "start_time": "17:00", "end_time": "09:00"})
    assert inverted.status_code == 400

    outside = client.post(base, json={
        "day_of_week": MONDAY, "start_time": "09:00", "end_time": "12:00",
        "break_start": "11:30", "break_end": "12:30",
    })
    assert outside.status_code == 400

    assert client.post(base, json={"day_of_week": 7, "start_time": "09:00", "end_time": "12:00"}).status_code == 422


def test_update_schedule_checks_merged_hours(client, doctor):
    schedule = client.post(f"/api/v1/doctors/{doctor['id']}/schedules", json={
        "day_of_week": MONDAY, "start_time": "09:00", "end_time": "12:00",
    }).json()
    response = client.put(f"/api/v1/doctors/schedules/{schedule['id']}", json={"start_time": "13:00"})
    assert response.status_code == 400
    assert client.delete(f"/api/v1/doctors/schedules/{schedule['id']}").status_code == 204
    assert client.delete(f"/api/v1/doctors/schedules/{schedule['id']}").status_code == 404


def test_time_off_lifecycle(client, doctor):
    base = f"/api/v1/doctors/{doctor['id']}"
    response = client.post(f"{base}/time-off", json={
        "start_date": "2025-07-01", "end_date": "2025-07-05", "reason": "Vacation",
    })
    assert response.status_code == 201
    time_off = response.json()
    assert time_off["is_approved"] is False

    check = client.get(f"{base}/time-off/check", params={"date": "2025-07-03"}).json()
    assert check["has_time_off"] is True
    assert client.get(f"{base}/time-off/check", params={"date": "2025-07-06"}).json()["has_time_off"] is False

    approved = client.patch(f"/api/v1/doctors/time-off/{time_off['id']}/approve")
    assert approved.json()["is_approved"] is True

    updated = client.put(f"/api/v1/doctors/time-off/{time_off['id']}", json={"reason": "Conference"})
    assert updated.json()["reason"] == "Conference"

    assert client.delete(f"/api/v1/doctors/time-off/{time_off['id']}").status_code == 204
    assert client.get(f"{base}/time-off").json() == []


def test_time_off_rejects_inverted_dates(client, doctor):
    response = client.post(f"/api/v1/doctors/{doctor['id']}/time-off", json={
        "start_date": "2025-07-05", "end_date": "2025-07-01", "reason": "Personal",
    })
    assert response.status_code == 400


def test_upcoming_time_off_hides_past_entries(client, doctor):
    base = f"/api/v1/doctors/{doctor['id']}/time-off"
    client.post(base, json={"start_date": "2000-01-01", "end_date": "2000-01-02", "reason": "Training"})
    client.post(base, json={"start_date": "2999-01-01", "end_date": "2999-01-02", "reason": "Training"})

    assert len(client.get(base).json()) == 2
    upcoming = client.get(base, params={"upcoming_only": True}).json()
    assert [t["start_date"] for t in upcoming] == ["2999-01-01"]
