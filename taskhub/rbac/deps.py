import uuid
from typing import Any

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taskhub.auth.deps import get_principal
from taskhub.errors import AuthorizationError, NotFoundError, ValidationError
from taskhub.models.enums import Role, TaskStatus
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.user import User
from taskhub.rbac.perms import Action, Decision, Outcome, Principal, evaluate
from taskhub.rbac.subjects import ProjectAccess, TaskAccess, UserTarget

def load_project(db: Session, project_id: uuid.UUID) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project

def load_task(db: Session, task_id: uuid.UUID) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task

def load_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user

def user_target(db: Session, user: User) -> UserTarget:
    owned = db.scalar(select(func.count()).select_from(Project).where(Project.owner_id == user.id)) or 0
    open_tasks = (
        db.scalar(
            select(func.count())
            .select_from(Task)
            .where(Task.assigned_to == user.id, Task.status != TaskStatus.completed)
        )
        or 0
    )
    return UserTarget(id=user.id, owned_projects=owned, open_assigned_tasks=open_tasks)

def enforce(decision: Decision) -> None:
    if decision.outcome is Outcome.allow:
        return
    if decision.outcome is Outcome.rejected:
        raise ValidationError(decision.reason, decision.details)
    raise AuthorizationError(decision.reason)

def authorize(principal: Principal, action: Action, subject: Any = None, **kw: Any) -> None:
    enforce(evaluate(principal, action, _adapt(subject), **kw))

def _adapt(subject: Any) -> Any:
    if isinstance(subject, Project):
        return ProjectAccess.of(subject)
    if isinstance(subject, Task):
        return TaskAccess.of(subject)
    if isinstance(subject, User):
        return UserTarget(id=subject.id)
    return subject

# coarse route gate, runs before any lookup
def require_roles(*roles: Role):
    allowed = frozenset(roles)
    names = ", ".join(r.value for r in roles)

    def _checker(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            raise AuthorizationError(f"Access denied. Required roles: {names}")
        return principal

    return _checker
