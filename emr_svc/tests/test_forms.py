"""
Tests for form templates and submission validation.
"""
import pytest

FIELDS = [
    {"name": "reason", "label": "Reason for visit", "type": "text", "required": True},
    {"name": "contact", "label": "Contact email", "type": "email"},
    {"name": "visit_date", "label": "Visit date", "type": "date"},
    {"name": "pain", "label": "Pain level", "type": "number"},
    {"name": "smoker", "label": "Smoker", "type": "checkbox"},
    {"name": "symptoms", "label": "Symptoms", "type": "checkbox", "options": ["cough", "fever"]},
    {"name": "visit_type", "label": "Visit type", "type": "select", "options": ["new", "follow-up"]},
]


@pytest.fixture
def template(client, clinic_id):
    response = client.post("/api/v1/forms/templates",
                           json={"title": "New patient intake", "fields": FIELDS, "clinic_id": clinic_id})
    assert response.status_code == 201, response.text
    return response.json()


def test_template_crud(client, template, superadmin):
    assert template["created_by"] == superadmin.id
    assert [f["name"] for f in template["fields"]] == [f["name"] for f in FIELDS]

    response = client.put(f"/api/v1/forms/templates/{template['id']}", json={"title": "Intake v2"})
    assert response.json()["title"] == "Intake v2"
    assert len(response.json()["fields"]) == len(FIELDS)

    assert client.delete(f"/api/v1/forms/templates/{template['id']}").status_code == 204
    assert client.get(f"/api/v1/forms/templates/{template['id']}").status_code == 404


def test_template_validation(client):
    no_options = [{"name": "choice", "label": "Choice", "type": "radio"}]
    assert client.post("/api/v1/forms/templates", json={"title": "Bad", "fields": no_options}).status_code == 422

    duplicate = [{"name": "a", "label": "A"}, {"name": "a", "label": "Again"}]
    assert client.post("/api/v1/forms/templates", json={"title": "Bad", "fields": duplicate}).status_code == 422

    assert client.post("/api/v1/forms/templates", json={"title": "Empty", "fields": []}).status_code == 422


def test_valid_submission(client, template, superadmin):
    values = {
        "reason": "Follow-up", "contact": "pat@clinic.com", "visit_date": "2025-03-17",
        "pain": 4, "smoker": False, "symptoms": ["cough"], "visit_type": "follow-up",
    }
    response = client.post(f"/api/v1/forms/templates/{template['id']}/submissions", json={"values": values})
    assert response.status_code == 201
    submission = response.json()
    assert submission["values"] == values
    assert submission["user_id"] == superadmin.id

    assert client.get(f"/api/v1/forms/submissions/{submission['id']}").json()["values"]["pain"] == 4
    listed = client.get(f"/api/v1/forms/templates/{template['id']}/submissions").json()
    assert [s["id"] for s in listed] == [submission["id"]]


def test_invalid_submission_lists_every_error(client, template):
    values = {
        "contact": "not-an-email", "visit_date": "17/03/2025", "pain": "a lot",
        "smoker": "yes", "symptoms": ["rash"], "visit_type": "walk-in", "extra": "?",
    }
    response = client.post(f"/api/v1/forms/templates/{template['id']}/submissions", json={"values": values})
    assert response.status_code == 400
    errors = response.json()["context"]["errors"]
    assert set(errors) == {"reason", "contact", "visit_date", "pain", "smoker", "symptoms", "visit_type", "extra"}
    assert errors["reason"] == "is required"


def test_numeric_strings_are_numbers(client, template):
    response = client.post(f"/api/v1/forms/templates/{template['id']}/submissions",
                           json={"values": {"reason": "Check", "pain": "7"}})
    assert response.status_code == 201


def test_deleting_template_removes_submissions(client, template):
    submission = client.post(f"/api/v1/forms/templates/{template['id']}/submissions",
                             json={"values": {"reason": "x"}}).json()
    client.delete(f"/api/v1/forms/templates/{template['id']}")
    assert client.get(f"/api/v1/forms/submissions/{submission['id']}").status_code == 404


def test_list_templates_includes_shared(client, template, clinic_id):
    shared = client.post("/api/v1/forms/templates",
                         json={"title": "Consent", "fields": [{"name": "agree", "label": "I agree", "type": "checkbox"}]}).json()
    ids = {t["id"] for t in client.get("/api/v1/forms/templates", params={"clinic_id": clinic_id}).json()}
    assert ids == {template["id"], shared["id"]}
