import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.auth.deps import get_current_user, get_principal
from taskhub.db import get_db
from taskhub.errors import ConflictError, ValidationError
from taskhub.models.enums import Priority, ProjectStatus, TaskStatus
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.user import User
from taskhub.rbac.deps import authorize, load_project, load_user
from taskhub.rbac.perms import Action, Principal
from taskhub.rbac.scopes import visible_projects
from taskhub.reports.stats import project_stats
from taskhub.routes.tasks import create_task_in_project, task_filters
from taskhub.schemas.common import DataOut, ListOut, MessageOut, UserBrief, UserIdIn
from taskhub.schemas.projects import (
    ProjectCreateIn,
    ProjectMembersOut,
    ProjectOut,
    ProjectStatsOut,
    ProjectUpdateIn,
)
from taskhub.schemas.tasks import TaskCreateIn, TaskOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

@router.get("", response_model=ListOut[ProjectOut])
def list_projects(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> ListOut[ProjectOut]:
    q = select(Project).where(visible_projects(principal)).order_by(Project.created_at.desc())
    rows = db.scalars(q).all()
    logger.info("%s retrieved %d projects", principal.role.value, len(rows))
    return ListOut(
        count=len(rows),
        data=[ProjectOut.model_validate(r) for r in rows],
        user_role=principal.role,
    )

@router.post("", response_model=DataOut[ProjectOut], status_code=201)
def create_project(
    payload: ProjectCreateIn,
    user: User = Depends(get_current_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectOut]:
    authorize(principal, Action.create_project)

    # creator first, then requested members without duplicates
    member_ids = list(dict.fromkeys([user.id, *payload.members]))
    members = [user] + [load_user(db, uid) for uid in member_ids[1:]]

    p = Project(
        title=payload.title.strip(),
        description=payload.description.strip(),
        priority=payload.priority or Priority.medium,
        status=ProjectStatus.active,
        end_date=payload.end_date,
        tags=payload.tags,
        owner_id=user.id,
        members=members,
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    logger.info("%s created project %s", principal.role.value, p.title)
    return DataOut(message="Project created successfully", data=ProjectOut.model_validate(p))

@router.get("/{project_id}", response_model=DataOut[ProjectOut])
def get_project(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.view_project, p)
    return DataOut(data=ProjectOut.model_validate(p))

@router.put("/{project_id}", response_model=DataOut[ProjectOut])
def update_project(
    project_id: uuid.UUID,
    payload: ProjectUpdateIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.update_project, p)

    for name, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(p, name, value.strip() if isinstance(value, str) else value)

    db.commit()
    db.refresh(p)
    logger.info("%s updated project %s", principal.role.value, p.title)
    return DataOut(message="Project updated successfully", data=ProjectOut.model_validate(p))

@router.delete("/{project_id}", response_model=MessageOut)
def delete_project(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> MessageOut:
    p = load_project(db, project_id)
    authorize(principal, Action.delete_project, p)

    # tasks, and through them comments, watchers and logs, go with the project
    title = p.title
    db.delete(p)
    db.commit()
    logger.info("%s deleted project %s", principal.role.value, title)
    return MessageOut(message="Project and related tasks deleted successfully")

@router.get("/{project_id}/tasks", response_model=ListOut[TaskOut])
def list_project_tasks(
    project_id: uuid.UUID,
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    assigned_to: uuid.UUID | None = Query(default=None, alias="assignedTo"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> ListOut[TaskOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.view_project, p)

    q = (
        select(Task)
        .where(Task.project_id == p.id, *task_filters(status, priority, None, assigned_to))
        .order_by(Task.created_at.desc())
    )
    rows = db.scalars(q).all()
    return ListOut(count=len(rows), data=[TaskOut.model_validate(r) for r in rows])

@router.post("/{project_id}/tasks", response_model=DataOut[TaskOut], status_code=201)
def create_project_task(
    project_id: uuid.UUID,
    payload: TaskCreateIn,
    user: User = Depends(get_current_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[TaskOut]:
    p = load_project(db, project_id)
    task = create_task_in_project(db, p, payload, user, principal)
    return DataOut(message="Task created successfully", data=TaskOut.model_validate(task))

@router.get("/{project_id}/members", response_model=DataOut[ProjectMembersOut])
def list_members(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectMembersOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.view_project, p)
    others = [m for m in p.members if m.id != p.owner_id]
    return DataOut(
        data=ProjectMembersOut(
            owner=UserBrief.model_validate(p.owner),
            members=[UserBrief.model_validate(m) for m in p.members],
            total_members=len(others) + 1,
        )
    )

@router.post("/{project_id}/members", response_model=DataOut[ProjectOut])
def add_member(
    project_id: uuid.UUID,
    payload: UserIdIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.add_member, p, target=payload.user_id)

    if payload.user_id in p.member_ids:
        raise ConflictError("User is already a member of this project")

    p.members.append(load_user(db, payload.user_id))
    db.commit()
    db.refresh(p)
    logger.info("%s added member to project %s", principal.role.value, p.title)
    return DataOut(message="Member added successfully", data=ProjectOut.model_validate(p))

@router.delete("/{project_id}/members/{user_id}", response_model=DataOut[ProjectOut])
def remove_member(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.remove_member, p, target=user_id)

    if user_id not in p.member_ids:
        raise ValidationError("User is not a member of this project")

    p.members = [m for m in p.members if m.id != user_id]
    db.commit()
    db.refresh(p)
    logger.info("%s removed member from project %s", principal.role.value, p.title)
    return DataOut(message="Member removed successfully", data=ProjectOut.model_validate(p))

@router.get("/{project_id}/stats", response_model=DataOut[ProjectStatsOut])
def get_project_stats(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> DataOut[ProjectStatsOut]:
    p = load_project(db, project_id)
    authorize(principal, Action.view_project, p)
    return DataOut(data=ProjectStatsOut(**project_stats(db, p)))
