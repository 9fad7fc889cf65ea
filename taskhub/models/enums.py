from enum import Enum

class Role(str, Enum):
    admin = "Admin"
    manager = "Manager"
    developer = "Developer"

class ProjectStatus(str, Enum):
    active = "active"
    completed = "completed"
    archived = "archived"

class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"

class TaskLogAction(str, Enum):
    created = "created"
    updated = "updated"
    status_changed = "status_changed"
    assigned = "assigned"
    unassigned = "unassigned"
    comment_added = "comment_added"
    attachment_added = "attachment_added"
    priority_changed = "priority_changed"
    due_date_changed = "due_date_changed"
    completed = "completed"
    reopened = "reopened"

def enum_values(enum_cls: type[Enum]) -> list[str]:
    # persist the wire value ("in-progress"), not the member name
    return [m.value for m in enum_cls]
