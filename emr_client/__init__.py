"""
Async HTTP client for the EMR Service API.
"""
from emr_client.client import EMRApiClient, get_emr_api_client
from emr_client.board import TaskBoard

__all__ = ["EMRApiClient", "TaskBoard", "get_emr_api_client"]
