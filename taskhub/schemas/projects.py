import uuid
from datetime import datetime

from pydantic import Field

from taskhub.models.enums import Priority, ProjectStatus
from taskhub.schemas.common import CamelModel, UserBrief

class ProjectCreateIn(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    priority: Priority | None = None
    end_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    members: list[uuid.UUID] = Field(default_factory=list)

class ProjectUpdateIn(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    priority: Priority | None = None
    status: ProjectStatus | None = None
    end_date: datetime | None = None
    tags: list[str] | None = None

class ProjectOut(CamelModel):
    id: uuid.UUID
    title: str
    description: str
    owner: UserBrief
    members: list[UserBrief]
    status: ProjectStatus
    priority: Priority
    tags: list[str]
    start_date: datetime
    end_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

class ProjectBrief(CamelModel):
    id: uuid.UUID
    title: str

class ProjectMembersOut(CamelModel):
    owner: UserBrief
    members: list[UserBrief]
    total_members: int

class ProjectStatsOut(CamelModel):
    project: dict
    tasks: dict
    priority: dict
