"""
Kanban board state kept on the client.

Moves are applied locally before the API confirms them; a failed PATCH
puts the card back where it was. Concurrent edits from other clients are
last-write-wins on the server.
"""
import logging
from typing import Dict, List, Any, Optional, Tuple

from emr_client.client import EMRApiClient

logger = logging.getLogger(__name__)

TASK_STATUSES = ("open", "in_progress", "completed", "closed")


class TaskBoard:
    """Tasks grouped into one column per status."""

    def __init__(self, client: EMRApiClient, statuses: Tuple[str, ...] = TASK_STATUSES):
        self.client = client
        self.statuses = statuses
        self.columns: Dict[str, List[Dict[str, Any]]] = {s: [] for s in statuses}

    async def load(self, **filters) -> Dict[str, List[Dict[str, Any]]]:
        """Replace the board contents with the tasks returned by list_tasks(**filters)."""
        tasks = await self.client.list_tasks(**filters)
        self.columns = {s: [] for s in self.statuses}
        for task in tasks:
            column = self.columns.get(task.get("status"))
            if column is None:
                logger.warning(f"Task {task.get('id')} has unknown status {task.get('status')!r}; skipped")
                continue
            column.append(task)
        return self.columns

    def find(self, task_id: int) -> Optional[Tuple[str, int]]:
        """Return (status, index) of the task, or None if it is not on the board."""
        for status, column in self.columns.items():
            for index, task in enumerate(column):
                if task["id"] == task_id:
                    return status, index
        return None

    def counts(self) -> Dict[str, int]:
        return {status: len(column) for status, column in self.columns.items()}

    async def move(self, task_id: int, status: str) -> Dict[str, Any]:
        """
        Move a task to another column.

        The card moves immediately, then the status is sent to the API.
        On success the card is replaced with the server's copy. On any
        failure the card returns to its previous column and position and
        the error is re-raised.

        Raises:
            KeyError: If the task is not on the board
            ValueError: For an unknown column, or an API error response
            ConnectionError: If connection fails
        """
        if status not in self.columns:
            raise ValueError(f"Unknown status: {status}")
        location = self.find(task_id)
        if location is None:
            raise KeyError(task_id)

        previous_status, previous_index = location
        if previous_status == status:
            return self.columns[status][previous_index]

        original = self.columns[previous_status].pop(previous_index)
        moved = dict(original, status=status)
        self.columns[status].append(moved)

        try:
            updated = await self.client.update_task_status(task_id, status)
        except (ValueError, ConnectionError):
            self.columns[status].remove(moved)
            self.columns[previous_status].insert(previous_index, original)
            logger.warning(f"Rolled back move of task {task_id} from {previous_status} to {status}")
            raise

        self.columns[status][self.columns[status].index(moved)] = updated
        return updated
