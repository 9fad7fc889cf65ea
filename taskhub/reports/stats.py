from collections import Counter
from datetime import timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from taskhub.models.base import as_utc, now_utc
from taskhub.models.enums import Priority, TaskStatus
from taskhub.models.project import Project, project_members
from taskhub.models.task import Task
from taskhub.models.user import User

def _count(db: Session, *where) -> int:
    return db.scalar(select(func.count()).select_from(Task).where(*where)) or 0

def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total > 0 else 0

def project_stats(db: Session, project: Project) -> dict:
    in_project = Task.project_id == project.id
    by_status = dict(
        db.execute(select(Task.status, func.count()).where(in_project).group_by(Task.status)).all()
    )
    by_priority = dict(
        db.execute(select(Task.priority, func.count()).where(in_project).group_by(Task.priority)).all()
    )
    total = sum(by_status.values())
    completed = by_status.get(TaskStatus.completed, 0)
    overdue = _count(
        db, in_project, Task.due_date < now_utc(), Task.status != TaskStatus.completed
    )

    return {
        "project": {
            "id": str(project.id),
            "title": project.title,
            "status": project.status.value,
            "priority": project.priority.value,
            "teamMembersCount": len(project.members),
            "completionPercentage": _percent(completed, total),
        },
        "tasks": {
            "total": total,
            "pending": by_status.get(TaskStatus.pending, 0),
            "inProgress": by_status.get(TaskStatus.in_progress, 0),
            "completed": completed,
            "overdue": overdue,
        },
        "priority": {p.value: by_priority.get(p, 0) for p in (Priority.high, Priority.medium, Priority.low)},
    }

def user_stats(db: Session, user: User) -> dict:
    assigned = Task.assigned_to == user.id
    by_status = dict(
        db.execute(select(Task.status, func.count()).where(assigned).group_by(Task.status)).all()
    )
    total = sum(by_status.values())
    completed = by_status.get(TaskStatus.completed, 0)

    owned = db.scalar(select(func.count()).select_from(Project).where(Project.owner_id == user.id)) or 0
    member = (
        db.scalar(
            select(func.count()).select_from(project_members).where(project_members.c.user_id == user.id)
        )
        or 0
    )

    done = db.execute(
        select(Task.created_at, Task.completed_at).where(
            assigned, Task.status == TaskStatus.completed, Task.completed_at.is_not(None)
        )
    ).all()
    avg_days = 0
    if done:
        spent = sum(((as_utc(c) - as_utc(s)) for s, c in done), timedelta())
        avg_days = round(spent.total_seconds() / len(done) / 86400)

    # monthly completions over the last six months, oldest first
    since = now_utc() - timedelta(days=183)
    months: Counter[tuple[int, int]] = Counter()
    for (completed_at,) in db.execute(
        select(Task.completed_at).where(
            assigned, Task.status == TaskStatus.completed, Task.completed_at >= since
        )
    ):
        at = as_utc(completed_at)
        months[(at.year, at.month)] += 1

    return {
        "user": {
            "id": str(user.id),
            "username": user.username,
            "name": user.name,
            "role": user.role.value,
        },
        "tasks": {
            "total": total,
            "pending": by_status.get(TaskStatus.pending, 0),
            "inProgress": by_status.get(TaskStatus.in_progress, 0),
            "completed": completed,
            "created": _count(db, Task.created_by == user.id),
            "overdue": _count(db, assigned, Task.due_date < now_utc(), Task.status != TaskStatus.completed),
            "completionRate": _percent(completed, total),
            "avgCompletionDays": avg_days,
        },
        "projects": {"owned": owned, "member": member, "total": owned + member},
        "trend": {
            "monthlyCompletions": [
                {"year": y, "month": m, "count": n} for (y, m), n in sorted(months.items())
            ]
        },
    }

def recent_activity(db: Session, user: User) -> dict:
    tasks = db.scalars(
        select(Task)
        .where(or_(Task.assigned_to == user.id, Task.created_by == user.id))
        .order_by(Task.updated_at.desc())
        .limit(5)
    ).all()
    projects = db.scalars(
        select(Project).where(Project.owner_id == user.id).order_by(Project.updated_at.desc()).limit(3)
    ).all()
    return {"tasks": tasks, "projects": projects}
