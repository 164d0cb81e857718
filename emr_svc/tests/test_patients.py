"""
Tests for patient registration, charts and MRN search.
"""
import re

import pytest

REGISTRATION = {
    "email": "john.doe@clinic.com",
    "password": "changeme123",
    "first_name": "John",
    "last_name": "Doe",
    "date_of_birth": "1980-04-12",
    "gender": "Male",
    "mobile_phone": "555-0111",
    "vitals": {"blood_pressure": "120/80", "heart_rate": "68"},
    "medical_history": {"allergies": "Penicillin"},
    "medications": [{"name": "Metformin", "dosage": "500 mg"}, {"name": "Old Med", "is_active": False}],
    "insurance": [{"provider_name": "Blue Shield", "is_primary": True}],
    "clinic_notes": [{"note": "First visit"}],
}


@pytest.fixture
def patient(client, clinic_id):
    response = client.post("/api/v1/patients", json={**REGISTRATION, "clinic_id": clinic_id})
    assert response.status_code == 201, response.text
    return response.json()


def test_registration_generates_identifiers(patient):
    assert re.fullmatch(r"MRN\d{8}", patient["medical_record_number"])
    assert re.fullmatch(r"\d{10}", patient["emr_number"])
    assert patient["emr_number"].endswith("0001")
    assert patient["username"] == patient["email"] == "john.doe@clinic.com"
    assert patient["status"] == "active"
    assert patient["preferred_language"] == "English"


def test_emr_numbers_are_sequential(client, patient):
    second = client.post("/api/v1/patients", json={**REGISTRATION, "email": "jane.doe@clinic.com"}).json()
    assert int(second["emr_number"]) == int(patient["emr_number"]) + 1


def test_registration_stores_nested_records(patient, superadmin):
    assert patient["vitals"]["blood_pressure"] == "120/80"
    assert patient["medical_history"]["allergies"] == "Penicillin"
    # Only active medications are shown
    assert [m["name"] for m in patient["medications"]] == ["Metformin"]
    assert patient["insurance"][0]["provider_name"] == "Blue Shield"
    assert patient["clinic_notes"][0]["note"] == "First visit"
    assert patient["clinic_notes"][0]["author_id"] == superadmin.id


def test_registration_sends_welcome_email(patient, notifier):
    assert notifier.welcome == [{"email": "john.doe@clinic.com", "first_name": "John"}]


def test_patient_user_account_can_log_in(patient, anon_client):
    response = anon_client.post("/api/v1/auth/login", json={"email": patient["email"], "password": "changeme123"})
    assert response.status_code == 200
    assert response.json()["user"]["user_type"] == "Patient"


def test_duplicate_email_returns_409(client, patient, notifier):
    response = client.post("/api/v1/patients", json=REGISTRATION)
    assert response.status_code == 409
    assert len(notifier.welcome) == 1


def test_update_replaces_vitals_and_appends_lists(client, patient):
    response = client.put(f"/api/v1/patients/{patient['id']}", json={
        "city": "Springfield",
        "vitals": {"blood_pressure": "130/85"},
        "medications": [{"name": "Lisinopril"}],
        "clinic_notes": [{"note": "Follow-up"}],
    })
    assert response.status_code == 200
    updated = response.json()
    assert updated["city"] == "Springfield"
    assert updated["vitals"]["blood_pressure"] == "130/85"
    assert [m["name"] for m in updated["medications"]] == ["Metformin", "Lisinopril"]
    # Newest note first
    assert [n["note"] for n in updated["clinic_notes"]] == ["Follow-up", "First visit"]


def test_update_email_renames_login(client, patient):
    response = client.put(f"/api/v1/patients/{patient['id']}", json={"email": "johnny@clinic.com"})
    assert response.json()["username"] == "johnny@clinic.com"


def test_list_filters_by_status(client, patient):
    client.put(f"/api/v1/patients/{patient['id']}", json={"status": "discharged"})
    assert client.get("/api/v1/patients", params={"status": "active"}).json() == []
    discharged = client.get("/api/v1/patients", params={"status": "discharged"}).json()
    assert [p["id"] for p in discharged] == [patient["id"]]


def test_search_by_partial_mrn(client, patient, clinic_id):
    fragment = patient["medical_record_number"][-6:].lower()
    results = client.get("/api/v1/patients/search", params={"mrn": fragment}).json()
    assert [r["id"] for r in results] == [patient["id"]]

    other_clinic = client.get("/api/v1/patients/search", params={"mrn": fragment, "clinic_id": clinic_id + 100}).json()
    assert other_clinic == []


def test_status_options(client):
    assert client.get("/api/v1/patients/meta/status-options").json() == ["active", "inactive", "discharged"]


def test_delete_removes_user_account(client, patient):
    assert client.delete(f"/api/v1/patients/{patient['id']}").status_code == 204
    assert client.get(f"/api/v1/patients/{patient['id']}").status_code == 404
    assert client.get(f"/api/v1/users/{patient['user_id']}").status_code == 404


def test_mrn_generation_retries_on_collision(patient_service, patient_repo, monkeypatch):
    seen = iter([True, True, False])
    monkeypatch.setattr(patient_repo, "mrn_exists", lambda mrn: next(seen))
    assert patient_service._generate_mrn().startswith("MRN")


def test_registration_after_delete_continues_sequence(client, patient):
    second = client.post("/api/v1/patients", json={**REGISTRATION, "email": "jane.doe@clinic.com"}).json()
    assert client.delete(f"/api/v1/patients/{patient['id']}").status_code == 204

    response = client.post("/api/v1/patients", json={**REGISTRATION, "email": "jim.doe@clinic.com"})
    assert response.status_code == 201, response.text
    assert int(response.json()["emr_number"]) == int(second["emr_number"]) + 1


def test_unknown_clinic_returns_400(client, notifier):
    response = client.post("/api/v1/patients", json={**REGISTRATION, "clinic_id": 9999})
    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown clinic"
    assert notifier.welcome == []


def test_identifier_collision_is_retried(patient_service, patient, monkeypatch):
    from schemas import PatientCreate

    mrns = iter([patient["medical_record_number"], "MRN99990001"])
    monkeypatch.setattr(patient_service, "_generate_mrn", lambda: next(mrns))

    created = patient_service.create_patient(PatientCreate(**{**REGISTRATION, "email": "jane.doe@clinic.com"}))
    assert created.medical_record_number == "MRN99990001"
    assert created.email == "jane.doe@clinic.com"
