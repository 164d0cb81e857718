"""
Unit tests for EMRApiClient.
Tests that the HTTP client builds the right requests and maps API errors.
"""
import pytest
from unittest.mock import AsyncMock, patch
import httpx

from emr_client import client as client_module
from emr_client.client import APIError, EMRApiClient, get_emr_api_client


TEST_TASK = {
    "id": 7,
    "title": "Call lab about results",
    "status": "open",
    "priority": "medium",
}

TEST_LOGIN_RESPONSE = {
    "access_token": "header.payload.signature",
    "token_type": "bearer",
    "expires_in": 86400,
    "user": {"id": 1, "email": "superadmin@emr.com"},
    "is_super_admin": True,
}


@pytest.fixture
def mock_client():
    """Create an EMRApiClient with a test base URL."""
    return EMRApiClient(base_url="http://test-server")


@pytest.fixture
def transport(monkeypatch):
    """Route every AsyncClient the module creates through an httpx.MockTransport."""
    real_client = httpx.AsyncClient
    captured = []

    def _install(handler):
        def _recording_handler(request):
            captured.append(request)
            return handler(request)

        monkeypatch.setattr(
            client_module.httpx, "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(_recording_handler), **kwargs),
        )
        return captured

    return _install


@pytest.mark.asyncio
async def test_login_stores_token(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = TEST_LOGIN_RESPONSE

        result = await mock_client.login("superadmin@emr.com", "superadmin123")

        assert result["is_super_admin"] is True
        assert mock_client.token == "header.payload.signature"
        mock_request.assert_called_once_with(
            "POST",
            "/api/v1/auth/login",
            json={"email": "superadmin@emr.com", "password": "superadmin123", "remember_me": False}
        )


@pytest.mark.asyncio
async def test_login_failure_keeps_no_token(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.side_effect = ValueError("API error 401: Invalid credentials")

        with pytest.raises(ValueError):
            await mock_client.login("superadmin@emr.com", "wrong")

        assert mock_client.token is None


def test_logout_drops_token():
    api = EMRApiClient(base_url="http://test-server", token="abc")
    api.logout()
    assert api.token is None


@pytest.mark.asyncio
async def test_list_tasks_with_filters(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = [TEST_TASK]

        result = await mock_client.list_tasks(clinic_id=1, status="open", assigned_to_me=True)

        assert result[0]["id"] == 7
        mock_request.assert_called_once_with(
            "GET",
            "/api/v1/tasks",
            params={"clinic_id": 1, "status": "open", "assigned_to_me": "true"}
        )


@pytest.mark.asyncio
async def test_create_task_omits_unset_fields(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = TEST_TASK

        await mock_client.create_task("Call lab about results", priority="high", assigned_to=None)

        mock_request.assert_called_once_with(
            "POST",
            "/api/v1/tasks",
            json={"title": "Call lab about results", "priority": "high"}
        )


@pytest.mark.asyncio
async def test_update_task_status(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = dict(TEST_TASK, status="completed")

        result = await mock_client.update_task_status(7, "completed")

        assert result["status"] == "completed"
        mock_request.assert_called_once_with("PATCH", "/api/v1/tasks/7/status", json={"status": "completed"})


@pytest.mark.asyncio
async def test_get_task_stats(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = {"total": 0}

        await mock_client.get_task_stats()
        mock_request.assert_called_once_with("GET", "/api/v1/tasks/stats", params={})


@pytest.mark.asyncio
async def test_get_available_slots(mock_client):
    slots = [{"start": "09:00", "end": "09:30"}]
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = slots

        result = await mock_client.get_available_slots(3, "2025-03-17", location_id=2)

        assert result == slots
        mock_request.assert_called_once_with(
            "GET",
            "/api/v1/appointments/available-slots",
            params={"doctor_id": 3, "date": "2025-03-17", "location_id": 2}
        )


@pytest.mark.asyncio
async def test_create_appointment_payload(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = {"id": 1}

        await mock_client.create_appointment(
            clinic_id=1, patient_id=2, doctor_id=3,
            date="2025-03-17", start_time="09:00", end_time="09:30"
        )

        mock_request.assert_called_once_with(
            "POST",
            "/api/v1/appointments",
            json={
                "clinic_id": 1, "patient_id": 2, "doctor_id": 3, "date": "2025-03-17",
                "start_time": "09:00", "end_time": "09:30", "type": "onsite",
            }
        )


@pytest.mark.asyncio
async def test_cancel_appointment(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = {"id": 5, "status": "cancelled"}

        result = await mock_client.cancel_appointment(5)

        assert result["status"] == "cancelled"
        mock_request.assert_called_once_with("PATCH", "/api/v1/appointments/5/cancel")


@pytest.mark.asyncio
async def test_list_patients_connection_error(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.side_effect = ConnectionError("Connection failed")

        with pytest.raises(ConnectionError):
            await mock_client.list_patients(clinic_id=1)


@pytest.mark.asyncio
async def test_check_permission(mock_client):
    with patch.object(mock_client, '_request', new_callable=AsyncMock) as mock_request:
        mock_request.return_value = {
            "user_id": 4, "module": "Patient Management", "operation": "Read", "allowed": True
        }

        assert await mock_client.check_permission(4, "Patient Management", "Read") is True
        mock_request.assert_called_once_with(
            "GET",
            "/api/v1/access/users/4/check",
            params={"module": "Patient Management", "operation": "Read"}
        )


# =============================================================================
# _request against a mock transport
# =============================================================================

@pytest.mark.asyncio
async def test_request_sends_bearer_token(transport):
    captured = transport(lambda request: httpx.Response(200, json=[]))
    api = EMRApiClient(base_url="http://test-server/", token="abc")

    assert await api.list_patients() == []
    assert str(captured[0].url) == "http://test-server/api/v1/patients"
    assert captured[0].headers["Authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_request_without_token_sends_no_auth_header(transport, mock_client):
    captured = transport(lambda request: httpx.Response(200, json={"total": 0}))

    await mock_client.get_task_stats()
    assert "Authorization" not in captured[0].headers


@pytest.mark.asyncio
async def test_request_returns_none_for_no_content(transport, mock_client):
    transport(lambda request: httpx.Response(204))
    assert await mock_client._request("DELETE", "/api/v1/tasks/7") is None


@pytest.mark.asyncio
async def test_error_response_raises_api_error_with_detail(transport, mock_client):
    transport(lambda request: httpx.Response(
        400, json={"detail": "Doctor already has an appointment at this time", "context": {}}
    ))

    with pytest.raises(ValueError) as exc_info:
        await mock_client.create_appointment(1, 2, 3, "2025-03-17", "09:00", "09:30")

    error = exc_info.value
    assert isinstance(error, APIError)
    assert error.status_code == 400
    assert error.detail == "Doctor already has an appointment at this time"
    assert str(error) == "API error 400: Doctor already has an appointment at this time"


@pytest.mark.asyncio
async def test_error_response_keeps_context(transport, mock_client):
    transport(lambda request: httpx.Response(
        400, json={"detail": "Unknown module-operation ids", "context": {"missing_ids": [98, 99]}}
    ))

    with pytest.raises(APIError) as exc_info:
        await mock_client._request("POST", "/api/v1/access/roles/1/permissions", json={})
    assert exc_info.value.context == {"missing_ids": [98, 99]}


@pytest.mark.asyncio
async def test_non_json_error_uses_body_text(transport, mock_client):
    transport(lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(APIError) as exc_info:
        await mock_client.list_tasks()
    assert exc_info.value.detail == "Bad Gateway"


@pytest.mark.asyncio
async def test_transport_failure_raises_connection_error(transport, mock_client):
    def _refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    transport(_refuse)

    with pytest.raises(ConnectionError) as exc_info:
        await mock_client.list_tasks()
    assert "Connection refused" in str(exc_info.value)


# =============================================================================
# Construction
# =============================================================================

def test_get_emr_api_client_singleton(monkeypatch):
    monkeypatch.setattr(client_module, "_client_instance", None)

    with patch("emr_client.client.EMRApiClient") as mock_client_class:
        first = get_emr_api_client()
        second = get_emr_api_client()

        assert first is second
        mock_client_class.assert_called_once_with()


def test_init_removes_trailing_slash():
    assert EMRApiClient(base_url="http://test-server/").base_url == "http://test-server"


def test_init_falls_back_to_settings(monkeypatch):
    monkeypatch.setattr(client_module.settings, "emr_api_url", "http://configured:9000")
    assert EMRApiClient().base_url == "http://configured:9000"


def test_init_requires_url(monkeypatch):
    monkeypatch.setattr(client_module.settings, "emr_api_url", "")
    with pytest.raises(ValueError):
        EMRApiClient()
