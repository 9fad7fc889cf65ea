from sqlalchemy import ColumnElement, false, or_, select, true

from taskhub.models.enums import Role
from taskhub.models.project import Project, project_members
from taskhub.models.task import Task
from taskhub.rbac.perms import Principal

def _member_of(principal: Principal):
    return select(project_members.c.project_id).where(project_members.c.user_id == principal.id)

def visible_projects(principal: Principal) -> ColumnElement[bool]:
    """WHERE clause for GET /projects."""
    if principal.role == Role.admin:
        return true()
    if principal.role == Role.manager:
        return or_(Project.owner_id == principal.id, Project.id.in_(_member_of(principal)))
    if principal.role == Role.developer:
        return Project.id.in_(_member_of(principal))
    return false()

def visible_tasks(principal: Principal) -> ColumnElement[bool]:
    """WHERE clause for GET /tasks."""
    if principal.role == Role.admin:
        return true()
    if principal.role == Role.manager:
        related = select(Project.id).where(
            or_(Project.owner_id == principal.id, Project.id.in_(_member_of(principal)))
        )
        return Task.project_id.in_(related)
    if principal.role == Role.developer:
        return or_(Task.assigned_to == principal.id, Task.created_by == principal.id)
    return false()
