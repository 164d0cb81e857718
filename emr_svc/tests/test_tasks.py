"""
Tests for the kanban task board: tasks, history, comments and attachments.
"""
import pytest

SUPERADMIN = ("superadmin@emr.com", "superadmin123")


@pytest.fixture
def task(client, clinic_id):
    response = client.post("/api/v1/tasks", json={"title": "Call lab about results", "clinic_id": clinic_id})
    assert response.status_code == 201, response.text
    return response.json()


def _pdf(name="report.pdf", content=b"%PDF-1.4 test document"):
    return ("files", (name, content, "application/pdf"))


def test_create_defaults(task, superadmin):
    assert task["status"] == "open"
    assert task["priority"] == "medium"
    assert task["created_by"] == superadmin.id
    assert task["comment_count"] == 0
    assert task["attachments"] == []


def test_unknown_assignee_is_rejected(client):
    response = client.post("/api/v1/tasks", json={"title": "Orphan", "assigned_to": 9999})
    assert response.status_code == 400


def test_history_records_creation_edits_and_moves(client, task, make_user):
    nurse = make_user(user_type="Nurse")
    client.put(f"/api/v1/tasks/{task['id']}", json={"priority": "high", "assigned_to": nurse["id"]})
    # Saving the same value again adds nothing
    client.put(f"/api/v1/tasks/{task['id']}", json={"priority": "high"})
    client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "in_progress"})
    client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "in_progress"})

    history = client.get(f"/api/v1/tasks/{task['id']}/history").json()
    actions = [h["action"] for h in history]
    assert actions == ["status_changed", "edited", "edited", "created"]
    assert history[0]["old_value"] == "open"
    assert history[0]["new_value"] == "in_progress"
    assert {h["field_name"] for h in history if h["action"] == "edited"} == {"priority", "assigned_to"}


def test_status_move_last_write_wins(client, task):
    client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "completed"})
    response = client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "open"})
    assert response.json()["status"] == "open"
    assert client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "done"}).status_code == 422


@pytest.mark.parametrize("body", [{"title": None}, {"priority": None}])
def test_null_for_required_field_is_rejected(client, task, body):
    response = client.put(f"/api/v1/tasks/{task['id']}", json=body)
    assert response.status_code == 422
    assert next(iter(body)) in response.text

    unchanged = client.get(f"/api/v1/tasks/{task['id']}").json()
    assert unchanged["title"] == "Call lab about results"
    assert unchanged["priority"] == "medium"


def test_null_clears_optional_field(client, task):
    client.put(f"/api/v1/tasks/{task['id']}", json={"description": "Ask for the CBC panel"})
    response = client.put(f"/api/v1/tasks/{task['id']}", json={"description": None})
    assert response.status_code == 200
    assert response.json()["description"] is None


def test_list_filters_and_assigned_to_me(client, task, superadmin, make_user):
    other = make_user()
    mine = client.post("/api/v1/tasks", json={"title": "Mine", "priority": "urgent",
                                              "assigned_to": superadmin.id}).json()
    client.post("/api/v1/tasks", json={"title": "Theirs", "assigned_to": other["id"]})

    urgent = client.get("/api/v1/tasks", params={"priority": "urgent"}).json()
    assert [t["id"] for t in urgent] == [mine["id"]]

    assigned = client.get("/api/v1/tasks", params={"assigned_to_me": True, "assigned_to": other["id"]}).json()
    assert [t["id"] for t in assigned] == [mine["id"]]


def test_stats_count_every_bucket(client, task):
    client.post("/api/v1/tasks", json={"title": "Second", "priority": "low", "status": "closed"})
    stats = client.get("/api/v1/tasks/stats").json()
    assert stats["total"] == 2
    assert stats["by_status"] == {"open": 1, "in_progress": 0, "completed": 0, "closed": 1}
    assert stats["by_priority"]["low"] == 1
    assert stats["by_priority"]["urgent"] == 0


def test_assignable_users_are_active(client, clinic_id, make_user):
    active = make_user()
    inactive = make_user(status="inactive")
    ids = [u["id"] for u in client.get("/api/v1/tasks/assignable-users", params={"clinic_id": clinic_id}).json()]
    assert active["id"] in ids
    assert inactive["id"] not in ids


def test_comments(client, task):
    response = client.post(f"/api/v1/tasks/{task['id']}/comments", json={"comment": "Lab called back"})
    assert response.status_code == 201
    comment = response.json()
    assert comment["email"] == "superadmin@emr.com"

    assert client.get(f"/api/v1/tasks/{task['id']}").json()["comment_count"] == 1
    assert client.delete(f"/api/v1/tasks/{task['id']}/comments/{comment['id']}").status_code == 204
    assert client.get(f"/api/v1/tasks/{task['id']}/comments").json() == []


def test_only_author_or_super_admin_deletes_comment(anon_client, login, make_user):
    author = make_user()
    bystander = make_user()
    author_headers = login(author["email"], "password123")
    bystander_headers = login(bystander["email"], "password123")

    task = anon_client.post("/api/v1/tasks", json={"title": "Shared"}, headers=author_headers).json()
    comment = anon_client.post(f"/api/v1/tasks/{task['id']}/comments", json={"comment": "mine"},
                               headers=author_headers).json()
    url = f"/api/v1/tasks/{task['id']}/comments/{comment['id']}"

    denied = anon_client.delete(url, headers=bystander_headers)
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Only the author can delete this comment"

    assert anon_client.delete(url, headers=login(*SUPERADMIN)).status_code == 204


def test_comment_on_other_task_is_not_found(client, task):
    other = client.post("/api/v1/tasks", json={"title": "Other"}).json()
    comment = client.post(f"/api/v1/tasks/{task['id']}/comments", json={"comment": "hi"}).json()
    assert client.delete(f"/api/v1/tasks/{other['id']}/comments/{comment['id']}").status_code == 404


def test_attachment_upload_download_delete(client, task, upload_service):
    response = client.post(f"/api/v1/tasks/{task['id']}/attachments",
                           files=[_pdf(), ("files", ("notes.txt", b"call back at 3", "text/plain"))])
    assert response.status_code == 201
    attachments = response.json()
    assert [a["original_name"] for a in attachments] == ["report.pdf", "notes.txt"]
    assert attachments[0]["size"] == len(b"%PDF-1.4 test document")

    pdf = attachments[0]
    download = client.get(f"/api/v1/tasks/{task['id']}/attachments/{pdf['id']}/download")
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 test document"
    assert download.headers["content-type"].startswith("application/pdf")
    assert "report.pdf" in download.headers["content-disposition"]

    assert len(list(upload_service.upload_dir.iterdir())) == 2
    assert client.delete(f"/api/v1/tasks/{task['id']}/attachments/{pdf['id']}").status_code == 204
    assert len(list(upload_service.upload_dir.iterdir())) == 1
    assert len(client.get(f"/api/v1/tasks/{task['id']}").json()["attachments"]) == 1


def test_disallowed_type_is_rejected(client, task, upload_service):
    response = client.post(f"/api/v1/tasks/{task['id']}/attachments",
                           files=[("files", ("setup.exe", b"MZ", "application/x-msdownload"))])
    assert response.status_code == 415
    assert list(upload_service.upload_dir.iterdir()) == []


def test_mismatched_extension_is_rejected(client, task):
    response = client.post(f"/api/v1/tasks/{task['id']}/attachments",
                           files=[("files", ("photo.png", b"not really", "application/pdf"))])
    assert response.status_code == 415


def test_oversized_file_rejects_whole_batch(client, task, upload_service):
    too_big = b"x" * (upload_service.max_size + 1)
    response = client.post(f"/api/v1/tasks/{task['id']}/attachments",
                           files=[_pdf(), _pdf("big.pdf", too_big)])
    assert response.status_code == 413
    assert list(upload_service.upload_dir.iterdir()) == []


def test_too_many_files(client, task, upload_service):
    files = [_pdf(f"f{i}.pdf") for i in range(upload_service.max_files + 1)]
    response = client.post(f"/api/v1/tasks/{task['id']}/attachments", files=files)
    assert response.status_code == 400


def test_delete_task_removes_files(client, task, upload_service):
    client.post(f"/api/v1/tasks/{task['id']}/attachments", files=[_pdf()])
    assert client.delete(f"/api/v1/tasks/{task['id']}").status_code == 204
    assert list(upload_service.upload_dir.iterdir()) == []
    assert client.get(f"/api/v1/tasks/{task['id']}").status_code == 404
