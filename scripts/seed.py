import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.auth.passwords import hash_password
from taskhub.config import Settings
from taskhub.context import AppContext
from taskhub.models.enums import Priority, Role
from taskhub.models.project import Project
from taskhub.models.task import Task
from taskhub.models.user import User
from taskhub.workflow import transitions

DEMO_PASSWORD = "password123"

@dataclass
class SeedResult:
    admin_email: str
    manager_email: str
    developer_email: str
    project_id: uuid.UUID
    task_id: uuid.UUID

def get_or_create_user(db: Session, username: str, role: Role, rounds: int) -> User:
    email = f"{username}@example.com"
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(
            username=username,
            name=username.title(),
            email=email,
            password_hash=hash_password(DEMO_PASSWORD, rounds),
            role=role,
        )
        db.add(u)
        db.flush()
    elif u.role != role:
        # keep it stable if you re-run seed
        u.role = role
        db.flush()
    return u

def get_or_create_project(db: Session, owner: User, title: str, members: list[User]) -> Project:
    p = db.scalar(select(Project).where(Project.owner_id == owner.id, Project.title == title))
    if p is None:
        p = Project(
            title=title,
            description=f"{title} (seeded)",
            owner_id=owner.id,
            priority=Priority.high,
            members=[owner],
        )
        db.add(p)
        db.flush()
    for m in members:
        if m.id not in p.member_ids:
            p.members.append(m)
    db.flush()
    return p

def get_or_create_task(db: Session, project: Project, title: str, creator: User, assignee: User | None) -> Task:
    t = db.scalar(select(Task).where(Task.project_id == project.id, Task.title == title))
    if t is None:
        t = transitions.create_task(
            db,
            project_id=project.id,
            creator=creator,
            assignee=assignee,
            title=title,
            description=f"{title} (seeded)",
        )
    elif t.assigned_to != (assignee.id if assignee else None):
        transitions.assign(db, t, assignee, creator.id)
        db.flush()
    return t

def seed(settings: Settings | None = None) -> SeedResult:
    settings = settings or Settings()
    ctx = AppContext.build(settings)
    db = ctx.session_factory()
    try:
        admin = get_or_create_user(db, "admin", Role.admin, settings.bcrypt_rounds)
        manager = get_or_create_user(db, "manager", Role.manager, settings.bcrypt_rounds)
        developer = get_or_create_user(db, "developer", Role.developer, settings.bcrypt_rounds)

        project = get_or_create_project(db, manager, "seeded project", [developer])
        task = get_or_create_task(db, project, "seeded task", creator=manager, assignee=developer)

        db.commit()

        return SeedResult(
            admin_email=admin.email,
            manager_email=manager.email,
            developer_email=developer.email,
            project_id=project.id,
            task_id=task.id,
        )
    finally:
        db.close()
        ctx.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"project_id={r.project_id}")
    print(f"task_id={r.task_id}")
    print(f"users (password {DEMO_PASSWORD}):")
    print(f"  admin:     {r.admin_email}")
    print(f"  manager:   {r.manager_email}")
    print(f"  developer: {r.developer_email}")
