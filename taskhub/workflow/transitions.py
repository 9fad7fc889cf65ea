"""Task mutations that carry side effects.

Every change to a task goes through here so that three things stay true:
``completed_at`` is set exactly when the status is completed, the creator
and the current assignee are watchers, and each change appends one
:class:`TaskLog` row.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from taskhub.models.base import now_utc
from taskhub.models.enums import TaskLogAction, TaskStatus
from taskhub.models.task import Task, TaskComment
from taskhub.models.task_log import TaskLog
from taskhub.models.user import User

logger = logging.getLogger(__name__)

_FIELD_ACTIONS = {
    "priority": TaskLogAction.priority_changed,
    "due_date": TaskLogAction.due_date_changed,
}

def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value

def record(
    db: Session,
    task: Task,
    action: TaskLogAction,
    actor_id: uuid.UUID,
    *,
    field: str | None = None,
    old: Any = None,
    new: Any = None,
    description: str | None = None,
    meta: dict | None = None,
) -> TaskLog:
    entry = TaskLog(
        task_id=task.id,
        action=action,
        field=field,
        old_value=_jsonable(old),
        new_value=_jsonable(new),
        changed_by=actor_id,
        description=description[:500] if description else None,
        meta=meta or {},
    )
    db.add(entry)
    return entry

def ensure_watcher(task: Task, user: User | None) -> None:
    if user is not None and user.id not in task.watcher_ids:
        task.watchers.append(user)

def _apply_status(task: Task, status: TaskStatus) -> None:
    if status == TaskStatus.completed:
        if task.status != TaskStatus.completed or task.completed_at is None:
            task.completed_at = now_utc()
    else:
        task.completed_at = None
    task.status = status

def create_task(
    db: Session,
    *,
    project_id: uuid.UUID,
    creator: User,
    assignee: User | None,
    title: str,
    description: str,
    **fields: Any,
) -> Task:
    status = fields.pop("status", None) or TaskStatus.pending
    task = Task(
        project_id=project_id,
        created_by=creator.id,
        assigned_to=assignee.id if assignee else None,
        title=title,
        description=description,
        **{k: v for k, v in fields.items() if v is not None},
    )
    _apply_status(task, status)
    ensure_watcher(task, creator)
    ensure_watcher(task, assignee)
    db.add(task)
    db.flush()

    record(
        db,
        task,
        TaskLogAction.created,
        creator.id,
        description=f'Task "{title}" created with status {status.value}',
    )
    return task

def change_status(db: Session, task: Task, status: TaskStatus, actor_id: uuid.UUID) -> bool:
    old = task.status
    if old == status:
        return False

    _apply_status(task, status)
    record(
        db,
        task,
        TaskLogAction.status_changed,
        actor_id,
        field="status",
        old=old,
        new=status,
        description=f"Status changed from {old.value} to {status.value}",
    )
    logger.info("task %s status %s -> %s", task.id, old.value, status.value)
    return True

def assign(db: Session, task: Task, assignee: User | None, actor_id: uuid.UUID) -> bool:
    old = task.assigned_to
    new = assignee.id if assignee else None
    if old == new:
        return False

    task.assigned_to = new
    ensure_watcher(task, assignee)
    record(
        db,
        task,
        TaskLogAction.assigned if assignee else TaskLogAction.unassigned,
        actor_id,
        field="assignedTo",
        old=old,
        new=new,
        description="Task assigned to user" if assignee else "Task unassigned",
    )
    return True

def set_actual_hours(db: Session, task: Task, hours: float, actor_id: uuid.UUID) -> bool:
    old = task.actual_hours
    if old == hours:
        return False

    task.actual_hours = hours
    record(
        db,
        task,
        TaskLogAction.updated,
        actor_id,
        field="actualHours",
        old=old,
        new=hours,
        description=f"Actual hours updated: {old} -> {hours}",
    )
    return True

def update_fields(
    db: Session,
    task: Task,
    changes: dict[str, Any],
    actor_id: uuid.UUID,
    *,
    assignee: User | None = None,
) -> list[str]:
    """Apply a partial update; returns the names of fields that actually changed."""
    changed: list[str] = []
    for name, value in changes.items():
        if name == "status":
            if value is not None and change_status(db, task, value, actor_id):
                changed.append(name)
            continue
        if name == "assigned_to":
            if assign(db, task, assignee, actor_id):
                changed.append(name)
            continue
        if name == "actual_hours":
            if value is not None and set_actual_hours(db, task, value, actor_id):
                changed.append(name)
            continue

        old = getattr(task, name)
        if old == value:
            continue
        setattr(task, name, value)
        wire = to_camel(name)
        record(
            db,
            task,
            _FIELD_ACTIONS.get(name, TaskLogAction.updated),
            actor_id,
            field=wire,
            old=old,
            new=value,
            description=f"Task updated: {wire}: {_jsonable(old)} -> {_jsonable(value)}",
        )
        changed.append(name)
    return changed

def add_comment(db: Session, task: Task, author: User, content: str) -> TaskComment:
    comment = TaskComment(task_id=task.id, author_id=author.id, content=content)
    task.comments.append(comment)
    preview = content[:50] + ("..." if len(content) > 50 else "")
    record(db, task, TaskLogAction.comment_added, author.id, description=f"Comment added: {preview}")
    return comment
