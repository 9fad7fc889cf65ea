"""Immutable views of the rows the permission rules look at."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskhub.models.project import Project
    from taskhub.models.task import Task

@dataclass(frozen=True)
class ProjectAccess:
    id: uuid.UUID
    owner_id: uuid.UUID
    member_ids: frozenset[uuid.UUID] = frozenset()

    @classmethod
    def of(cls, project: Project) -> ProjectAccess:
        return cls(id=project.id, owner_id=project.owner_id, member_ids=project.member_ids)

@dataclass(frozen=True)
class TaskAccess:
    id: uuid.UUID
    project: ProjectAccess
    created_by: uuid.UUID | None
    assigned_to: uuid.UUID | None = None

    @classmethod
    def of(cls, task: Task) -> TaskAccess:
        return cls(
            id=task.id,
            project=ProjectAccess.of(task.project),
            created_by=task.created_by,
            assigned_to=task.assigned_to,
        )

@dataclass(frozen=True)
class UserTarget:
    id: uuid.UUID
    owned_projects: int = 0
    open_assigned_tasks: int = 0
