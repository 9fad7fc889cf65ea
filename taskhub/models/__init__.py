from taskhub.models.base import Base
from taskhub.models.project import Project, project_members
from taskhub.models.task import Task, TaskComment, task_watchers
from taskhub.models.task_log import TaskLog
from taskhub.models.user import User

__all__ = [
    "Base",
    "User",
    "Project",
    "Task",
    "TaskComment",
    "TaskLog",
    "project_members",
    "task_watchers",
]
