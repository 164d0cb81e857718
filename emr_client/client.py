"""
HTTP client for the EMR Service API.
Provides a thin async interface over the REST endpoints used by front-end tooling.
"""
import httpx
import logging
from typing import Optional, List, Dict, Any

from emr_client.config import settings

logger = logging.getLogger(__name__)


class APIError(ValueError):
    """An error response from the API, carrying the server's detail and status code."""

    def __init__(self, status_code: int, detail: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"API error {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.context = context or {}


def _error_detail(response: httpx.Response) -> tuple:
    try:
        body = response.json()
    except ValueError:
        return response.text, {}
    if isinstance(body, dict):
        detail = body.get("detail", response.text)
        # Request validation errors come back as a list of field errors
        if not isinstance(detail, str):
            detail = str(detail)
        return detail, body.get("context") or {}
    return response.text, {}


class EMRApiClient:
    """Client for the EMR Service REST API."""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url or settings.emr_api_url
        if not self.base_url:
            raise ValueError("EMR_API_URL must be set in config")

        # Remove trailing slash
        self.base_url = self.base_url.rstrip("/")
        self.token = token
        self.timeout = timeout or settings.emr_api_timeout

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make HTTP request to API.

        Returns the decoded JSON body, or None for 204 No Content.

        Raises:
            APIError: For HTTP error responses (a ValueError)
            ConnectionError: For connection/request errors
        """
        url = f"{self.base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
                response.raise_for_status()
                if response.status_code == 204:
                    return None
                return response.json()
        except httpx.HTTPStatusError as e:
            detail, context = _error_detail(e.response)
            logger.error(f"API error {e.response.status_code} on {method} {endpoint}: {detail}")
            raise APIError(e.response.status_code, detail, context) from e
        except httpx.RequestError as e:
            error_msg = f"Request error: {e}"
            logger.error(error_msg)
            raise ConnectionError(error_msg) from e

    # Auth methods
    async def login(self, email: str, password: str, remember_me: bool = False) -> Dict[str, Any]:
        """
        Log in and keep the bearer token for later calls.

        Returns:
            Dict with access_token, token_type, expires_in, user and is_super_admin

        Raises:
            ValueError: For invalid credentials or a deactivated account
            ConnectionError: If connection fails
        """
        result = await self._request(
            "POST",
            "/api/v1/auth/login",
            json={"email": email, "password": password, "remember_me": remember_me}
        )
        self.token = result["access_token"]
        return result

    def logout(self) -> None:
        """Tokens are stateless; dropping it is all logging out means for the client."""
        self.token = None

    # Task methods
    async def list_tasks(
        self,
        clinic_id: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[int] = None,
        assigned_to_me: bool = False
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if clinic_id is not None:
            params["clinic_id"] = clinic_id
        if status:
            params["status"] = status
        if priority:
            params["priority"] = priority
        if assigned_to is not None:
            params["assigned_to"] = assigned_to
        if assigned_to_me:
            params["assigned_to_me"] = "true"

        return await self._request("GET", "/api/v1/tasks", params=params)

    async def create_task(self, title: str, **fields) -> Dict[str, Any]:
        """
        Create a task. Extra keyword fields (description, status, priority,
        clinic_id, assigned_to, start_date, due_date) are sent as given.
        """
        payload = {"title": title}
        payload.update({k: v for k, v in fields.items() if v is not None})
        return await self._request("POST", "/api/v1/tasks", json=payload)

    async def update_task_status(self, task_id: int, status: str) -> Dict[str, Any]:
        """
        Move a task to another kanban column.

        Raises:
            ValueError: For an unknown task (404) or invalid status (422)
            ConnectionError: If connection fails
        """
        return await self._request(
            "PATCH",
            f"/api/v1/tasks/{task_id}/status",
            json={"status": status}
        )

    async def get_task_stats(self, clinic_id: Optional[int] = None) -> Dict[str, Any]:
        params = {"clinic_id": clinic_id} if clinic_id is not None else {}
        return await self._request("GET", "/api/v1/tasks/stats", params=params)

    # Appointment methods
    async def get_available_slots(
        self,
        doctor_id: int,
        date: str,
        location_id: Optional[int] = None
    ) -> List[Dict[str, str]]:
        """
        Free slots of a doctor on a date.

        Args:
            doctor_id: Doctor id
            date: Day as YYYY-MM-DD
            location_id: Location id (optional)

        Returns:
            List of {"start": "HH:MM", "end": "HH:MM"} dicts
        """
        params: Dict[str, Any] = {"doctor_id": doctor_id, "date": date}
        if location_id is not None:
            params["location_id"] = location_id
        return await self._request("GET", "/api/v1/appointments/available-slots", params=params)

    async def create_appointment(
        self,
        clinic_id: int,
        patient_id: int,
        doctor_id: int,
        date: str,
        start_time: str,
        end_time: str,
        location_id: Optional[int] = None,
        appointment_type: str = "onsite",
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Book an appointment.

        Raises:
            ValueError: If the doctor is already booked or the times are inverted (400)
            ConnectionError: If connection fails
        """
        payload: Dict[str, Any] = {
            "clinic_id": clinic_id,
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "date": date,
            "start_time": start_time,
            "end_time": end_time,
            "type": appointment_type,
        }
        if location_id is not None:
            payload["location_id"] = location_id
        if notes is not None:
            payload["notes"] = notes

        return await self._request("POST", "/api/v1/appointments", json=payload)

    async def cancel_appointment(self, appointment_id: int) -> Dict[str, Any]:
        return await self._request("PATCH", f"/api/v1/appointments/{appointment_id}/cancel")

    # Patient methods
    async def list_patients(
        self,
        clinic_id: Optional[int] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if clinic_id is not None:
            params["clinic_id"] = clinic_id
        if status:
            params["status"] = status
        if limit:
            params["limit"] = limit

        return await self._request("GET", "/api/v1/patients", params=params)

    # Access methods
    async def check_permission(self, user_id: int, module: str, operation: str) -> bool:
        """Whether the user may perform the operation on the module."""
        result = await self._request(
            "GET",
            f"/api/v1/access/users/{user_id}/check",
            params={"module": module, "operation": operation}
        )
        return bool(result.get("allowed"))


# Global client instance
_client_instance: Optional[EMRApiClient] = None


def get_emr_api_client() -> EMRApiClient:
    """Get or create the global API client instance."""
    global _client_instance
    if _client_instance is None:
        _client_instance = EMRApiClient()
    return _client_instance
