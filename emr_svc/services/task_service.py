"""
Task Service - Business logic for the kanban task board.

This service handles:
- Task CRUD with an audit history (created / edited / status_changed)
- Status moves with last-write-wins semantics
- Comments, assignable users and board statistics
- File attachments stored through UploadService

Architecture:
    API Layer (routers/tasks) → TaskService → TaskRepository → Database
                                            → UploadService → upload dir
"""
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import UploadFile

from core.exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from repositories import TaskRepository, UserRepository
from repositories.task_repository import EDITABLE_COLUMNS
from schemas import (
    AssignableUser,
    AttachmentResponse,
    CommentResponse,
    HistoryEntry,
    TaskCreate,
    TaskResponse,
    TaskStatsResponse,
    TaskUpdate,
)
from services.upload_service import UploadService

logger = logging.getLogger(__name__)


class TaskService:
    """
    Service for the task board.

    Concurrent status moves are not coordinated: whichever PATCH reaches
    the database last determines the stored status.
    """

    def __init__(self, task_repository: TaskRepository, user_repository: UserRepository,
                 upload_service: UploadService):
        self._repo = task_repository
        self._users = user_repository
        self._uploads = upload_service

    def _require(self, task_id: int) -> Dict[str, Any]:
        task = self._repo.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def _response(self, task: Dict[str, Any]) -> TaskResponse:
        attachments = [AttachmentResponse(**a) for a in self._repo.list_attachments(task["id"])]
        return TaskResponse(**task, attachments=attachments)

    def _check_assignee(self, assigned_to: Optional[int]) -> None:
        if assigned_to is not None and self._users.get_by_id(assigned_to) is None:
            raise ValidationFailedError("Assignee does not exist", assigned_to=assigned_to)

    # ------------------------------------------------------------------ tasks

    def list_tasks(self, clinic_id: Optional[int] = None, status: Optional[str] = None,
                   priority: Optional[str] = None, assigned_to: Optional[int] = None) -> List[TaskResponse]:
        rows = self._repo.list(clinic_id=clinic_id, status=status, priority=priority, assigned_to=assigned_to)
        return [self._response(t) for t in rows]

    def get_task(self, task_id: int) -> TaskResponse:
        return self._response(self._require(task_id))

    def create_task(self, data: TaskCreate, created_by: int) -> TaskResponse:
        """Create a task and record a 'created' history entry."""
        self._check_assignee(data.assigned_to)
        try:
            task = self._repo.create(data.model_dump(), created_by)
        except sqlite3.IntegrityError:
            raise ValidationFailedError("Unknown clinic or user", clinic_id=data.clinic_id)
        logger.info(f"Task {task['id']} created by user {created_by}")
        return self._response(task)

    def update_task(self, task_id: int, data: TaskUpdate, changed_by: int) -> TaskResponse:
        """
        Patch editable fields.

        One 'edited' history entry is written for every field whose value
        actually changed; unchanged fields are not recorded.
        """
        existing = self._require(task_id)
        fields = data.model_dump(exclude_unset=True)
        if "assigned_to" in fields:
            self._check_assignee(fields["assigned_to"])

        changes: List[Tuple[str, Any, Any]] = [
            (name, existing.get(name), value)
            for name, value in fields.items()
            if name in EDITABLE_COLUMNS and existing.get(name) != value
        ]
        if not changes:
            return self._response(existing)
        return self._response(self._repo.update(task_id, fields, changes, changed_by))

    def update_status(self, task_id: int, status: str, changed_by: int) -> TaskResponse:
        """
        Move a task to ``status``.

        History is written only when the status differs from the stored one.
        """
        existing = self._require(task_id)
        task = self._repo.update_status(task_id, existing["status"], status, changed_by)
        if existing["status"] != status:
            logger.info(f"Task {task_id} moved {existing['status']} -> {status} by user {changed_by}")
        return self._response(task)

    def delete_task(self, task_id: int) -> None:
        """Delete a task, its comments, history, attachment rows and files."""
        self._require(task_id)
        stored = [a["stored_name"] for a in self._repo.list_attachments(task_id)]
        self._repo.delete(task_id)
        self._uploads.remove_files(stored)
        logger.info(f"Task deleted: {task_id}")

    def get_stats(self, clinic_id: Optional[int] = None) -> TaskStatsResponse:
        return TaskStatsResponse(**self._repo.stats(clinic_id))

    def assignable_users(self, clinic_id: Optional[int] = None) -> List[AssignableUser]:
        return [AssignableUser(**u) for u in self._users.list_assignable(clinic_id)]

    # -------------------------------------------------------- history/comments

    def list_history(self, task_id: int) -> List[HistoryEntry]:
        self._require(task_id)
        return [HistoryEntry(**h) for h in self._repo.list_history(task_id)]

    def list_comments(self, task_id: int) -> List[CommentResponse]:
        self._require(task_id)
        return [CommentResponse(**c) for c in self._repo.list_comments(task_id)]

    def add_comment(self, task_id: int, user_id: int, comment: str) -> CommentResponse:
        self._require(task_id)
        return CommentResponse(**self._repo.add_comment(task_id, user_id, comment))

    def delete_comment(self, task_id: int, comment_id: int, user_id: int, is_super_admin: bool = False) -> None:
        """
        Delete a comment.

        Raises:
            NotFoundError: The comment does not exist on this task.
            PermissionDeniedError: The caller is neither the author nor a super admin.
        """
        comment = self._repo.get_comment(comment_id)
        if comment is None or comment["task_id"] != task_id:
            raise NotFoundError("Comment", comment_id)
        if comment["user_id"] != user_id and not is_super_admin:
            raise PermissionDeniedError(detail="Only the author can delete this comment")
        self._repo.delete_comment(comment_id)

    # ------------------------------------------------------------ attachments

    async def add_attachments(self, task_id: int, files: Sequence[UploadFile],
                              uploaded_by: int) -> List[AttachmentResponse]:
        """
        Store uploaded files and attach them to a task.

        Raises:
            NotFoundError: Unknown task.
            UploadError: On an empty, oversized, mistyped or too large batch.
        """
        self._require(task_id)
        saved = await self._uploads.save_files(files)
        try:
            rows = self._repo.add_attachments(task_id, saved, uploaded_by)
        except sqlite3.Error:
            self._uploads.remove_files(s["stored_name"] for s in saved)
            raise
        logger.info(f"Attached {len(rows)} file(s) to task {task_id}")
        return [AttachmentResponse(**a) for a in rows]

    def list_attachments(self, task_id: int) -> List[AttachmentResponse]:
        self._require(task_id)
        return [AttachmentResponse(**a) for a in self._repo.list_attachments(task_id)]

    def _require_attachment(self, task_id: int, attachment_id: int) -> Dict[str, Any]:
        attachment = self._repo.get_attachment(attachment_id)
        if attachment is None or attachment["task_id"] != task_id:
            raise NotFoundError("Attachment", attachment_id)
        return attachment

    def attachment_file(self, task_id: int, attachment_id: int) -> Tuple[Path, Dict[str, Any]]:
        """Path of the stored file and its attachment row, for download."""
        attachment = self._require_attachment(task_id, attachment_id)
        return self._uploads.path_for(attachment["stored_name"]), attachment

    def delete_attachment(self, task_id: int, attachment_id: int) -> None:
        attachment = self._require_attachment(task_id, attachment_id)
        self._repo.delete_attachment(attachment_id)
        self._uploads.remove_files([attachment["stored_name"]])
        logger.info(f"Attachment {attachment_id} removed from task {task_id}")
