"""
Tests for TaskBoard optimistic moves.
"""
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from emr_client.board import TaskBoard
from emr_client.client import APIError

TASKS = [
    {"id": 1, "title": "Refill request", "status": "open"},
    {"id": 2, "title": "Call lab", "status": "open"},
    {"id": 3, "title": "Prior auth", "status": "in_progress"},
    {"id": 4, "title": "Old ticket", "status": "archived"},
]


@pytest.fixture
def api():
    client = MagicMock()
    client.list_tasks = AsyncMock(return_value=[dict(t) for t in TASKS])
    client.update_task_status = AsyncMock()
    return client


@pytest_asyncio.fixture
async def board(api):
    board = TaskBoard(api)
    await board.load(clinic_id=1)
    return board


@pytest.mark.asyncio
async def test_load_groups_by_status_and_skips_unknown(api, board):
    api.list_tasks.assert_awaited_once_with(clinic_id=1)
    assert board.counts() == {"open": 2, "in_progress": 1, "completed": 0, "closed": 0}
    assert board.find(4) is None


@pytest.mark.asyncio
async def test_move_applies_server_copy(api, board):
    api.update_task_status.return_value = {"id": 2, "title": "Call lab", "status": "completed",
                                           "updated_at": "2025-03-17T10:00:00"}

    result = await board.move(2, "completed")

    api.update_task_status.assert_awaited_once_with(2, "completed")
    assert result["updated_at"] == "2025-03-17T10:00:00"
    assert [t["id"] for t in board.columns["open"]] == [1]
    assert board.columns["completed"] == [result]


@pytest.mark.asyncio
async def test_failed_move_rolls_back_to_original_position(api, board):
    api.update_task_status.side_effect = APIError(404, "Task not found")

    with pytest.raises(ValueError):
        await board.move(1, "closed")

    assert [t["id"] for t in board.columns["open"]] == [1, 2]
    assert board.columns["open"][0]["status"] == "open"
    assert board.columns["closed"] == []


@pytest.mark.asyncio
async def test_connection_failure_rolls_back(api, board):
    api.update_task_status.side_effect = ConnectionError("Request error: timed out")

    with pytest.raises(ConnectionError):
        await board.move(3, "completed")

    assert board.find(3) == ("in_progress", 0)


@pytest.mark.asyncio
async def test_move_to_same_column_skips_the_api(api, board):
    result = await board.move(3, "in_progress")

    assert result["id"] == 3
    api.update_task_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_move_rejects_unknown_column_and_task(api, board):
    with pytest.raises(ValueError):
        await board.move(1, "done")
    with pytest.raises(KeyError):
        await board.move(99, "closed")
    api.update_task_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_last_write_wins_between_moves(api, board):
    api.update_task_status.side_effect = [
        {"id": 1, "title": "Refill request", "status": "in_progress"},
        {"id": 1, "title": "Refill request", "status": "closed"},
    ]

    await board.move(1, "in_progress")
    await board.move(1, "closed")

    assert board.find(1) == ("closed", 0)
    assert board.counts()["in_progress"] == 1
