import uuid
from datetime import datetime

from pydantic import EmailStr, Field, StrictBool

from taskhub.models.enums import Priority, ProjectStatus, Role, TaskStatus
from taskhub.schemas.common import CamelModel

class UserOut(CamelModel):
    id: uuid.UUID
    username: str
    name: str
    email: str
    role: Role
    avatar: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

class ActivityTask(CamelModel):
    id: uuid.UUID
    title: str
    status: TaskStatus
    priority: Priority
    project_id: uuid.UUID
    updated_at: datetime

class ActivityProject(CamelModel):
    id: uuid.UUID
    title: str
    status: ProjectStatus
    priority: Priority

class RecentActivity(CamelModel):
    tasks: list[ActivityTask]
    projects: list[ActivityProject]

class UserDetailOut(UserOut):
    recent_activity: RecentActivity | None = None

class UserUpdateIn(CamelModel):
    username: str | None = Field(default=None, min_length=3, max_length=30)
    name: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None
    avatar: str | None = Field(default=None, max_length=500)
    role: Role | None = None
    # refused by the route; passwords change through /auth/change-password
    password: str | None = None

class RoleIn(CamelModel):
    role: str

class StatusIn(CamelModel):
    is_active: StrictBool

class UserStatsOut(CamelModel):
    user: dict
    tasks: dict
    projects: dict
    trend: dict
