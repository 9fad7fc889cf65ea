import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.auth.deps import get_current_user, get_principal
from taskhub.context import AppContext
from taskhub.db import get_context, get_db
from taskhub.errors import ValidationError
from taskhub.models.enums import Priority, TaskStatus
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.task_log import TaskLog
from taskhub.models.user import User
from taskhub.rbac.deps import authorize, load_project, load_task, load_user
from taskhub.rbac.perms import Action, Principal
from taskhub.rbac.scopes import visible_tasks
from taskhub.schemas.common import DataOut, ListOut, MessageOut, UserIdIn
from taskhub.schemas.tasks import (
    AssignIn,
    CommentIn,
    ProgressIn,
    StatusIn,
    TaskCreateIn,
    TaskLogOut,
    TaskOut,
    TaskUpdateIn,
)
from taskhub.workflow import transitions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

# columns that may be cleared by sending null
NULLABLE_FIELDS = frozenset({"assigned_to", "due_date", "estimated_hours"})

def task_filters(
    status: TaskStatus | None,
    priority: Priority | None,
    project: uuid.UUID | None,
    assigned_to: uuid.UUID | None,
) -> list:
    clauses = []
    if status is not None:
        clauses.append(Task.status == status)
    if priority is not None:
        clauses.append(Task.priority == priority)
    if project is not None:
        clauses.append(Task.project_id == project)
    if assigned_to is not None:
        clauses.append(Task.assigned_to == assigned_to)
    return clauses

def create_task_in_project(
    db: Session,
    project: Project,
    payload: TaskCreateIn,
    user: User,
    principal: Principal,
) -> Task:
    authorize(principal, Action.create_task, project)

    assignee = load_user(db, payload.assigned_to) if payload.assigned_to else None
    task = transitions.create_task(
        db,
        project_id=project.id,
        creator=user,
        assignee=assignee,
        title=payload.title.strip(),
        description=payload.description.strip(),
        status=payload.status,
        priority=payload.priority or Priority.medium,
        due_date=payload.due_date,
        estimated_hours=payload.estimated_hours,
        tags=payload.tags,
    )
    db.commit()
    db.refresh(task)
    logger.info("%s created task %s in project %s", principal.role.value, task.title, project.title)
    return task

@router.get("", response_model=ListOut[TaskOut])
def list_tasks(
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    project: uuid.UUID | None = None,
    assigned_to: uuid.UUID | None = Query(default=None, alias="assignedTo"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> ListOut[TaskOut]:
    q = (
        select(Task)
        .where(visible_tasks(principal), *task_filters(status, priority, project, assigned_to))
        .order_by(Task.created_at.desc())
    )
    rows = db.scalars(q).all()
    logger.info("%s retrieved %d tasks", principal.role.value, len(rows))
    return ListOut(
        count=len(rows),
        data=[TaskOut.model_validate(r) for r in rows],
        user_role=principal.role,
    )

@router.post("", response_model=DataOut[TaskOut], status_code=201)
def create_task(
    payload: TaskCreateIn,
    user: User = Depends(get_current_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    if payload.project is None:
        raise ValidationError("Title, description, and project are required")

    project = load_project(db, payload.project)
    task = create_task_in_project(db, project, payload, user, principal)
    return DataOut(message="Task created successfully", data=TaskOut.model_validate(task))

@router.get("/{task_id}", response_model=DataOut[TaskOut])
def get_task(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)
    authorize(principal, Action.view_task, t)
    return DataOut(data=TaskOut.model_validate(t))

@router.put("/{task_id}", response_model=DataOut[TaskOut])
def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdateIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)

    fields = payload.model_fields_set
    authorize(principal, Action.update_task, t, fields=fields)
    if "assigned_to" in fields:
        authorize(principal, Action.assign_task, t)

    changes = {
        name: value
        for name, value in payload.model_dump(include=set(fields)).items()
        if value is not None or name in NULLABLE_FIELDS
    }
    assignee = None
    if changes.get("assigned_to") is not None:
        assignee = load_user(db, changes["assigned_to"])

    changed = transitions.update_fields(db, t, changes, principal.id, assignee=assignee)
    db.commit()
    db.refresh(t)
    logger.info("%s updated task %s (%s)", principal.role.value, t.title, ", ".join(changed) or "no changes")
    return DataOut(message="Task updated successfully", data=TaskOut.model_validate(t))

@router.delete("/{task_id}", response_model=MessageOut)
def delete_task(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> MessageOut:
    t = load_task(db, task_id)
    authorize(principal, Action.delete_task, t)

    title = t.title
    db.delete(t)
    db.commit()
    logger.info("%s deleted task %s", principal.role.value, title)
    return MessageOut(message="Task deleted successfully")

@router.patch("/{task_id}/status", response_model=DataOut[TaskOut])
def update_status(
    task_id: uuid.UUID,
    payload: StatusIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)

    try:
        status = TaskStatus(payload.status)
    except ValueError:
        raise ValidationError("Invalid status. Must be: pending, in-progress, or completed")

    authorize(principal, Action.progress_task, t)

    transitions.change_status(db, t, status, principal.id)
    db.commit()
    db.refresh(t)
    return DataOut(message="Task status updated successfully", data=TaskOut.model_validate(t))

@router.patch("/{task_id}/assign", response_model=DataOut[TaskOut])
def assign_task(
    task_id: uuid.UUID,
    payload: AssignIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)
    authorize(principal, Action.assign_task, t)

    assignee = load_user(db, payload.user_id) if payload.user_id else None
    transitions.assign(db, t, assignee, principal.id)
    db.commit()
    db.refresh(t)
    logger.info(
        "%s %s task %s", principal.role.value, "assigned" if assignee else "unassigned", t.title
    )
    return DataOut(
        message="Task assigned successfully" if assignee else "Task unassigned successfully",
        data=TaskOut.model_validate(t),
    )

@router.patch("/{task_id}/progress", response_model=DataOut[TaskOut])
def update_progress(
    task_id: uuid.UUID,
    payload: ProgressIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)
    if payload.actual_hours < 0:
        raise ValidationError("Actual hours cannot be negative")

    authorize(principal, Action.progress_task, t)

    transitions.set_actual_hours(db, t, payload.actual_hours, principal.id)
    db.commit()
    db.refresh(t)
    return DataOut(message="Task progress updated successfully", data=TaskOut.model_validate(t))

@router.post("/{task_id}/comments", response_model=DataOut[TaskOut])
def add_comment(
    task_id: uuid.UUID,
    payload: CommentIn,
    user: User = Depends(get_current_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    content = payload.content.strip()
    if not content:
        raise ValidationError("Comment content is required")

    t = load_task(db, task_id)
    authorize(principal, Action.view_task, t)

    transitions.add_comment(db, t, user, content)
    db.commit()
    db.refresh(t)
    return DataOut(message="Comment added successfully", data=TaskOut.model_validate(t))

@router.get("/{task_id}/history", response_model=ListOut[TaskLogOut])
def task_history(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    ctx: AppContext = Depends(get_context),
) -> ListOut[TaskLogOut]:
    t = load_task(db, task_id)
    authorize(principal, Action.view_task, t)

    q = (
        select(TaskLog)
        .where(TaskLog.task_id == t.id)
        .order_by(TaskLog.created_at.desc(), TaskLog.id.desc())
        .limit(ctx.settings.task_history_limit)
    )
    rows = db.scalars(q).all()
    return ListOut(count=len(rows), data=[TaskLogOut.model_validate(r) for r in rows])

@router.post("/{task_id}/watchers", response_model=DataOut[TaskOut])
def add_watcher(
    task_id: uuid.UUID,
    payload: UserIdIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)
    authorize(principal, Action.view_task, t)

    transitions.ensure_watcher(t, load_user(db, payload.user_id))
    db.commit()
    db.refresh(t)
    return DataOut(message="Watcher added successfully", data=TaskOut.model_validate(t))

@router.delete("/{task_id}/watchers/{user_id}", response_model=DataOut[TaskOut])
def remove_watcher(
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    t = load_task(db, task_id)
    authorize(principal, Action.view_task, t)

    if user_id in (t.created_by, t.assigned_to):
        raise ValidationError("The task creator and assignee always watch the task")

    t.watchers = [w for w in t.watchers if w.id != user_id]
    db.commit()
    db.refresh(t)
    return DataOut(message="Watcher removed successfully", data=TaskOut.model_validate(t))
