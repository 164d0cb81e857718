"""
Pydantic schemas for kanban tasks, comments, history and attachments.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.common import DATE_REGEX, PartialUpdate, TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Schema for creating a task. Status defaults to 'open' and priority to 'medium'."""
    title: str = Field(..., min_length=1, max_length=200, example="Call lab about results")
    description: Optional[str] = Field(None, max_length=5000)
    status: TaskStatus = "open"
    priority: TaskPriority = "medium"
    clinic_id: Optional[int] = None
    assigned_to: Optional[int] = Field(None, gt=0, description="User id of the assignee")
    start_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    due_date: Optional[str] = Field(None, pattern=DATE_REGEX)


class TaskUpdate(PartialUpdate):
    not_null = ("title", "priority")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[int] = Field(None, gt=0)
    start_date: Optional[str] = Field(None, pattern=DATE_REGEX)
    due_date: Optional[str] = Field(None, pattern=DATE_REGEX)


class TaskStatusUpdate(BaseModel):
    """Body of PATCH /tasks/{id}/status. The last write wins."""
    status: TaskStatus = Field(..., example="in_progress")


class AttachmentResponse(BaseModel):
    id: int
    task_id: int
    original_name: str
    content_type: str
    size: int
    uploaded_by: Optional[int] = None
    created_at: str


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    clinic_id: Optional[int] = None
    created_by: int
    created_by_name: Optional[str] = None
    assigned_to: Optional[int] = None
    assigned_to_name: Optional[str] = None
    start_date: Optional[str] = None
    due_date: Optional[str] = None
    comment_count: int = 0
    attachments: List[AttachmentResponse] = Field(default_factory=list)
    created_at: str
    updated_at: str


class TaskStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: int
    task_id: int
    user_id: int
    comment: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    created_at: str


class HistoryEntry(BaseModel):
    id: int
    task_id: int
    action: str
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[int] = None
    changed_by_name: Optional[str] = None
    created_at: str


class AssignableUser(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    user_type: str
