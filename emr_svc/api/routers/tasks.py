"""
Tasks router - the clinic kanban board.

Any authenticated user may work with tasks. Every change is recorded in
the task history: creation, each edited field, and status moves.
Status updates follow last-write-wins; the board client applies moves
optimistically and rolls back when this API refuses them.

Attachments are uploaded as multipart/form-data (1 to 10 files, each
at most 10MB) and stored on disk under a generated name.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import FileResponse

from core.auth import CurrentUser, get_current_user
from core.dependencies import get_task_service
from schemas import (
    AssignableUser,
    AttachmentResponse,
    CommentCreate,
    CommentResponse,
    HistoryEntry,
    TaskCreate,
    TaskResponse,
    TaskStatsResponse,
    TaskStatusUpdate,
    TaskUpdate,
)
from schemas.common import TaskPriority, TaskStatus
from services import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["Tasks"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "",
    response_model=List[TaskResponse],
    summary="List tasks",
    description="Filter by clinic, status, priority or assignee. assigned_to_me=true overrides assigned_to."
)
async def list_tasks(
    clinic_id: Optional[int] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    assigned_to: Optional[int] = Query(None),
    assigned_to_me: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    if assigned_to_me:
        assigned_to = current_user.id
    return task_service.list_tasks(clinic_id=clinic_id, status=status, priority=priority, assigned_to=assigned_to)


@router.post("", response_model=TaskResponse, status_code=201, summary="Create a task",
             description="Returns 400 if assigned_to is not a known user.")
async def create_task(
    task: TaskCreate,
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    return task_service.create_task(task, created_by=current_user.id)


@router.get(
    "/stats",
    response_model=TaskStatsResponse,
    summary="Task counts",
    description="Totals by status and priority. Missing buckets are reported as 0."
)
async def get_stats(
    clinic_id: Optional[int] = Query(None),
    task_service: TaskService = Depends(get_task_service),
):
    return task_service.get_stats(clinic_id)


@router.get("/assignable-users", response_model=List[AssignableUser], summary="Users a task can be assigned to")
async def assignable_users(
    clinic_id: Optional[int] = Query(None),
    task_service: TaskService = Depends(get_task_service),
):
    return task_service.assignable_users(clinic_id)


@router.get("/{task_id}", response_model=TaskResponse, summary="Get a task")
async def get_task(task_id: int, task_service: TaskService = Depends(get_task_service)):
    return task_service.get_task(task_id)


@router.put(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Edit a task",
    description="Writes one history entry per field whose value changed."
)
async def update_task(
    task_id: int,
    task: TaskUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    return task_service.update_task(task_id, task, changed_by=current_user.id)


@router.patch(
    "/{task_id}/status",
    response_model=TaskResponse,
    summary="Move a task",
    description="Set the kanban column. History is written only when the status actually changes."
)
async def update_status(
    task_id: int,
    body: TaskStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    return task_service.update_status(task_id, body.status, changed_by=current_user.id)


@router.delete("/{task_id}", status_code=204, summary="Delete a task",
               description="Removes comments, history and attachments, including the stored files.")
async def delete_task(task_id: int, task_service: TaskService = Depends(get_task_service)):
    task_service.delete_task(task_id)


# =============================================================================
# HISTORY & COMMENTS
# =============================================================================

@router.get("/{task_id}/history", response_model=List[HistoryEntry], summary="Task history, newest first")
async def list_history(task_id: int, task_service: TaskService = Depends(get_task_service)):
    return task_service.list_history(task_id)


@router.get("/{task_id}/comments", response_model=List[CommentResponse], summary="List comments")
async def list_comments(task_id: int, task_service: TaskService = Depends(get_task_service)):
    return task_service.list_comments(task_id)


@router.post("/{task_id}/comments", response_model=CommentResponse, status_code=201, summary="Add a comment")
async def add_comment(
    task_id: int,
    body: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    return task_service.add_comment(task_id, current_user.id, body.comment)


@router.delete(
    "/{task_id}/comments/{comment_id}",
    status_code=204,
    summary="Delete a comment",
    description="Only the author or a super admin may delete a comment; others get 403."
)
async def delete_comment(
    task_id: int,
    comment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    task_service.delete_comment(task_id, comment_id, current_user.id, is_super_admin=current_user.is_super_admin)


# =============================================================================
# ATTACHMENTS
# =============================================================================

@router.post(
    "/{task_id}/attachments",
    response_model=List[AttachmentResponse],
    status_code=201,
    summary="Upload attachments",
    description="Upload 1 to 10 files of at most 10MB each. Allowed: PDF, Word, Excel, JPEG, PNG, GIF "
                "and plain text; the extension must match the content type."
)
async def upload_attachments(
    task_id: int,
    files: List[UploadFile] = File(..., description="Files to attach"),
    current_user: CurrentUser = Depends(get_current_user),
    task_service: TaskService = Depends(get_task_service),
):
    """
    Attach files to a task.

    Raises:
    - 400 Bad Request: No files or more than 10
    - 415 Unsupported Media Type: A disallowed type or mismatched extension
    - 404 Not Found: Unknown task
    - 413 Payload Too Large: A file exceeds 10MB
    """
    return await task_service.add_attachments(task_id, files, uploaded_by=current_user.id)


@router.get("/{task_id}/attachments", response_model=List[AttachmentResponse], summary="List attachments")
async def list_attachments(task_id: int, task_service: TaskService = Depends(get_task_service)):
    return task_service.list_attachments(task_id)


@router.get(
    "/{task_id}/attachments/{attachment_id}/download",
    summary="Download an attachment",
    description="Streams the stored file under its original name."
)
async def download_attachment(task_id: int, attachment_id: int,
                              task_service: TaskService = Depends(get_task_service)):
    path, attachment = task_service.attachment_file(task_id, attachment_id)
    return FileResponse(path, filename=attachment["original_name"], media_type=attachment["content_type"])


@router.delete("/{task_id}/attachments/{attachment_id}", status_code=204, summary="Delete an attachment")
async def delete_attachment(task_id: int, attachment_id: int,
                            task_service: TaskService = Depends(get_task_service)):
    task_service.delete_attachment(task_id, attachment_id)
