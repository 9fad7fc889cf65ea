import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field

from taskhub.models.enums import Priority, TaskLogAction, TaskStatus
from taskhub.schemas.common import CamelModel, UserBrief
from taskhub.schemas.projects import ProjectBrief

class TaskCreateIn(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=1000)
    project: uuid.UUID | None = None
    assigned_to: uuid.UUID | None = None
    priority: Priority | None = None
    status: TaskStatus | None = None
    due_date: datetime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    tags: list[str] = Field(default_factory=list)

class TaskUpdateIn(CamelModel):
    # unknown keys are refused so the assignee field check sees every key
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=1000)
    status: TaskStatus | None = None
    priority: Priority | None = None
    assigned_to: uuid.UUID | None = None
    due_date: datetime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    tags: list[str] | None = None

class StatusIn(CamelModel):
    status: str

class AssignIn(CamelModel):
    user_id: uuid.UUID | None = None

class ProgressIn(CamelModel):
    actual_hours: float

class CommentIn(CamelModel):
    content: str = Field(max_length=500)

class CommentOut(CamelModel):
    id: uuid.UUID
    author: UserBrief | None = None
    content: str
    created_at: datetime
    edited_at: datetime | None = None

class TaskOut(CamelModel):
    id: uuid.UUID
    title: str
    description: str
    status: TaskStatus
    priority: Priority
    project: ProjectBrief
    created_by: uuid.UUID | None = None
    assigned_to: uuid.UUID | None = None
    creator: UserBrief | None = None
    assignee: UserBrief | None = None
    due_date: datetime | None = None
    estimated_hours: float | None = None
    actual_hours: float
    completed_at: datetime | None = None
    tags: list[str]
    comments: list[CommentOut]
    watchers: list[UserBrief]
    is_overdue: bool
    progress_percentage: float
    time_remaining: str | None = None
    created_at: datetime
    updated_at: datetime

class TaskLogOut(CamelModel):
    id: int
    action: TaskLogAction
    field: str | None = None
    old_value: Any = None
    new_value: Any = None
    changed_by: uuid.UUID | None = None
    actor: UserBrief | None = None
    description: str | None = None
    created_at: datetime
