"""
Tests for appointment booking, conflicts and free-slot computation.
"""
import pytest

MONDAY_DATE = "2025-03-17"
TUESDAY_DATE = "2025-03-18"


@pytest.fixture
def doctor(client, clinic_id):
    return client.post("/api/v1/doctors", json={
        "clinic_id": clinic_id,
        "user": {"email": "dr.house@clinic.com", "password": "password123", "last_name": "House"},
    }).json()


@pytest.fixture
def patient(client, clinic_id):
    return client.post("/api/v1/patients", json={
        "clinic_id": clinic_id, "email": "pat@clinic.com", "password": "password123",
        "first_name": "Pat", "last_name": "Jones",
    }).json()


@pytest.fixture
def book(client, clinic_id, doctor, patient):
    def _book(start, end, date=MONDAY_DATE, **extra):
        return client.post("/api/v1/appointments", json={
            "clinic_id": clinic_id, "patient_id": patient["id"], "doctor_id": doctor["id"],
            "date": date, "start_time": start, "end_time": end, **extra,
        })
    return _book


def _slots(client, doctor, date=MONDAY_DATE):
    response = client.get("/api/v1/appointments/available-slots", params={"doctor_id": doctor["id"], "date": date})
    assert response.status_code == 200
    return [s["start"] for s in response.json()]


def test_book_and_get(client, book, superadmin):
    response = book("09:00", "09:30", notes="Annual check")
    assert response.status_code == 201
    appointment = response.json()
    assert appointment["status"] == "scheduled"
    assert appointment["type"] == "onsite"
    assert appointment["patient_name"] == "Pat Jones"
    assert appointment["created_by"] == superadmin.id

    fetched = client.get(f"/api/v1/appointments/{appointment['id']}").json()
    assert fetched["notes"] == "Annual check"


def test_overlapping_booking_is_rejected(book):
    assert book("09:00", "10:00").status_code == 201
    response = book("09:30", "10:30")
    assert response.status_code == 400
    assert response.json()["detail"] == "This time slot conflicts with an existing appointment"


def test_adjacent_booking_is_allowed(book):
    assert book("09:00", "09:30").status_code == 201
    assert book("09:30", "10:00").status_code == 201


def test_same_time_on_another_day_is_allowed(book):
    assert book("09:00", "09:30").status_code == 201
    assert book("09:00", "09:30", date=TUESDAY_DATE).status_code == 201


def test_cancel_frees_the_slot(client, book):
    first = book("11:00", "11:30").json()
    cancelled = client.patch(f"/api/v1/appointments/{first['id']}/cancel")
    assert cancelled.json()["status"] == "cancelled"
    assert book("11:00", "11:30").status_code == 201


def test_inverted_times_are_rejected(book):
    assert book("10:00", "09:00").status_code == 400


def test_unknown_patient_is_rejected(client, clinic_id, doctor):
    response = client.post("/api/v1/appointments", json={
        "clinic_id": clinic_id, "patient_id": 9999, "doctor_id": doctor["id"],
        "date": MONDAY_DATE, "start_time": "09:00", "end_time": "09:30",
    })
    assert response.status_code == 400


def test_update_rechecks_conflicts(client, book):
    book("09:00", "09:30")
    second = book("10:00", "10:30").json()

    response = client.put(f"/api/v1/appointments/{second['id']}", json={"start_time": "09:15"})
    assert response.status_code == 400

    # Moving within its own range never conflicts with itself
    response = client.put(f"/api/v1/appointments/{second['id']}", json={"end_time": "10:45"})
    assert response.status_code == 200


def test_complete_and_delete(client, book):
    appointment = book("14:00", "14:30").json()
    assert client.patch(f"/api/v1/appointments/{appointment['id']}/complete").json()["status"] == "completed"
    assert client.delete(f"/api/v1/appointments/{appointment['id']}").status_code == 204
    assert client.get(f"/api/v1/appointments/{appointment['id']}").status_code == 404


def test_list_filters(client, book, patient):
    book("09:00", "09:30")
    book("09:00", "09:30", date=TUESDAY_DATE)
    on_monday = client.get("/api/v1/appointments", params={"date": MONDAY_DATE}).json()
    assert len(on_monday) == 1
    by_patient = client.get("/api/v1/appointments", params={"patient_id": patient["id"]}).json()
    assert len(by_patient) == 2
    assert client.get("/api/v1/appointments", params={"status": "cancelled"}).json() == []


def test_slots_default_to_nine_to_five(client, doctor):
    slots = _slots(client, doctor)
    assert len(slots) == 16
    assert slots[0] == "09:00" and slots[-1] == "16:30"


def test_slots_follow_schedule_break_and_bookings(client, doctor, book):
    client.post(f"/api/v1/doctors/{doctor['id']}/schedules", json={
        "day_of_week": 1, "start_time": "09:00", "end_time": "12:00",
        "break_start": "10:00", "break_end": "10:30",
    })
    book("11:00", "11:30")
    assert _slots(client, doctor) == ["09:00", "09:30", "10:30", "11:30"]
    # Tuesday has no row, so the default window applies
    assert len(_slots(client, doctor, TUESDAY_DATE)) == 16


def test_cancelled_booking_does_not_hide_slot(client, doctor, book):
    appointment = book("09:00", "09:30").json()
    assert "09:00" not in _slots(client, doctor)
    client.patch(f"/api/v1/appointments/{appointment['id']}/cancel")
    assert "09:00" in _slots(client, doctor)


def test_only_approved_time_off_blocks_slots(client, doctor):
    time_off = client.post(f"/api/v1/doctors/{doctor['id']}/time-off", json={
        "start_date": MONDAY_DATE, "end_date": MONDAY_DATE, "reason": "Sick Leave",
    }).json()
    assert len(_slots(client, doctor)) == 16

    client.patch(f"/api/v1/doctors/time-off/{time_off['id']}/approve")
    assert _slots(client, doctor) == []


def test_slots_path_form_accepts_location(client, doctor):
    response = client.get(f"/api/v1/appointments/slots/{doctor['id']}/{MONDAY_DATE}/1")
    assert response.status_code == 200
    assert len(response.json()) == 16


def test_slots_for_unknown_doctor(client):
    response = client.get("/api/v1/appointments/available-slots", params={"doctor_id": 9999, "date": MONDAY_DATE})
    assert response.status_code == 404
