"""Permission evaluation for projects, tasks and user administration.

Everything here is pure: callers load the rows, adapt them to the snapshots
in :mod:`taskhub.rbac.subjects` and ask :func:`evaluate` for a decision. The
HTTP layer turns a denial into a status code (forbidden -> 403,
rejected -> 400).

Evaluation order for a single action:

1. for anyone but ``Role.admin`` the action's allow rules run first; any
   satisfied rule grants standing, otherwise the forbidden result is final
   (admin-only actions forbid every other role here);
2. hard denials (self role change, self delete, owner removal, users with
   open work) then apply to every role, admins included;
3. anything left is allowed.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskhub.models.enums import Role
from taskhub.rbac.subjects import ProjectAccess, TaskAccess, UserTarget

@dataclass(frozen=True)
class Principal:
    id: uuid.UUID
    role: Role

class Action(str, Enum):
    view_project = "project:view"
    create_project = "project:create"
    update_project = "project:update"
    delete_project = "project:delete"
    add_member = "project:add_member"
    remove_member = "project:remove_member"

    view_task = "task:view"
    create_task = "task:create"
    update_task = "task:update"
    delete_task = "task:delete"
    assign_task = "task:assign"
    progress_task = "task:progress"

    list_users = "user:list"
    view_user = "user:view"
    update_user = "user:update"
    change_role = "user:change_role"
    set_user_status = "user:set_status"
    delete_user = "user:delete"

class Outcome(str, Enum):
    allow = "allow"
    forbidden = "forbidden"
    rejected = "rejected"

@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: str = ""
    details: dict[str, Any] | None = field(default=None)

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.allow

ALLOW = Decision(Outcome.allow)

def forbid(reason: str) -> Decision:
    return Decision(Outcome.forbidden, reason)

def reject(reason: str, details: dict[str, Any] | None = None) -> Decision:
    return Decision(Outcome.rejected, reason, details)

# fields an assignee may touch without any other standing on the task
ASSIGNEE_FIELDS = frozenset({"status", "actual_hours"})

@dataclass(frozen=True)
class _Ctx:
    principal: Principal
    subject: Any
    fields: frozenset[str]

    @property
    def is_manager(self) -> bool:
        return self.principal.role == Role.manager

Rule = Callable[[_Ctx], Decision]

def _project_related(p: Principal, project: ProjectAccess) -> bool:
    return project.owner_id == p.id or p.id in project.member_ids

def _view_project(c: _Ctx) -> Decision:
    project: ProjectAccess = c.subject
    if _project_related(c.principal, project):
        return ALLOW
    return forbid("Not authorized to view this project")

def _create_project(c: _Ctx) -> Decision:
    return ALLOW

def _update_project(c: _Ctx) -> Decision:
    if c.subject.owner_id == c.principal.id:
        return ALLOW
    return forbid("Not authorized to edit this project")

def _delete_project(c: _Ctx) -> Decision:
    if c.subject.owner_id == c.principal.id:
        return ALLOW
    return forbid("Not authorized to delete this project")

# Managers get member management on any project, related or not.
# Kept as-is pending a product decision, see DESIGN.md.
def _manage_members(c: _Ctx) -> Decision:
    if c.subject.owner_id == c.principal.id or c.is_manager:
        return ALLOW
    return forbid("Not authorized to manage members of this project")

def _view_task(c: _Ctx) -> Decision:
    task: TaskAccess = c.subject
    me = c.principal.id
    if me == task.created_by or me == task.assigned_to or _project_related(c.principal, task.project):
        return ALLOW
    return forbid("Not authorized to view this task")

def _create_task(c: _Ctx) -> Decision:
    project: ProjectAccess = c.subject
    if c.is_manager or _project_related(c.principal, project):
        return ALLOW
    return forbid("Not authorized to create tasks in this project")

def _update_task(c: _Ctx) -> Decision:
    task: TaskAccess = c.subject
    me = c.principal.id
    if c.is_manager or me == task.created_by or me == task.project.owner_id:
        return ALLOW

    if task.assigned_to is not None and me == task.assigned_to:
        if c.fields <= ASSIGNEE_FIELDS:
            return ALLOW
        return forbid("Assignees can only update status and actual hours")

    return forbid("Not authorized to update this task")

# status and hours updates: anyone working on the task or in its project.
# Role alone does not count, managers need a relation like everyone else.
def _progress_task(c: _Ctx) -> Decision:
    task: TaskAccess = c.subject
    me = c.principal.id
    if me == task.created_by or me == task.assigned_to or _project_related(c.principal, task.project):
        return ALLOW
    return forbid("Not authorized to update this task")

def _delete_task(c: _Ctx) -> Decision:
    task: TaskAccess = c.subject
    me = c.principal.id
    if c.is_manager or me == task.created_by or me == task.project.owner_id:
        return ALLOW
    return forbid("Not authorized to delete this task")

# The creator keeps reassignment rights even after leaving the project.
# Kept as-is pending a product decision, see DESIGN.md.
def _assign_task(c: _Ctx) -> Decision:
    task: TaskAccess = c.subject
    me = c.principal.id
    if c.is_manager or me == task.project.owner_id or me == task.created_by:
        return ALLOW
    return forbid("Not authorized to assign this task")

def _list_users(c: _Ctx) -> Decision:
    if c.is_manager:
        return ALLOW
    return forbid("Access denied. Manager or Admin role required.")

def _view_user(c: _Ctx) -> Decision:
    target: UserTarget = c.subject
    if target.id == c.principal.id or c.is_manager:
        return ALLOW
    return forbid("Access denied. Manager or Admin role required.")

def _update_user(c: _Ctx) -> Decision:
    if c.subject.id == c.principal.id:
        return ALLOW
    return forbid("Not authorized to update this user")

def _admin_only(c: _Ctx) -> Decision:
    return forbid("Access denied. Admin role required.")

RULES: dict[Action, Rule] = {
    Action.view_project: _view_project,
    Action.create_project: _create_project,
    Action.update_project: _update_project,
    Action.delete_project: _delete_project,
    Action.add_member: _manage_members,
    Action.remove_member: _manage_members,
    Action.view_task: _view_task,
    Action.create_task: _create_task,
    Action.update_task: _update_task,
    Action.delete_task: _delete_task,
    Action.assign_task: _assign_task,
    Action.progress_task: _progress_task,
    Action.list_users: _list_users,
    Action.view_user: _view_user,
    Action.update_user: _update_user,
    Action.change_role: _admin_only,
    Action.set_user_status: _admin_only,
    Action.delete_user: _admin_only,
}

def _deny_owner_removal(c: _Ctx, target: Any) -> Decision | None:
    project: ProjectAccess = c.subject
    if target is not None and target == project.owner_id:
        return reject("Cannot remove the project owner from the project")
    return None

def _deny_self_role_change(c: _Ctx, target: Any) -> Decision | None:
    if c.subject.id == c.principal.id:
        return reject("Cannot change your own role")
    return None

def _deny_user_delete(c: _Ctx, target: Any) -> Decision | None:
    user: UserTarget = c.subject
    if user.id == c.principal.id:
        return reject("Cannot delete your own account")
    if user.owned_projects > 0 or user.open_assigned_tasks > 0:
        return reject(
            "Cannot delete user with active projects or tasks. Please reassign them first.",
            {"ownedProjects": user.owned_projects, "assignedTasks": user.open_assigned_tasks},
        )
    return None

HARD_DENIALS: dict[Action, Callable[[_Ctx, Any], Decision | None]] = {
    Action.remove_member: _deny_owner_removal,
    Action.change_role: _deny_self_role_change,
    Action.delete_user: _deny_user_delete,
}

def evaluate(
    principal: Principal,
    action: Action,
    subject: Any = None,
    *,
    fields: Iterable[str] = (),
    target: Any = None,
) -> Decision:
    """Decide whether ``principal`` may perform ``action`` on ``subject``.

    ``fields`` is the set of attribute names an update touches (only
    consulted for :attr:`Action.update_task`); ``target`` is the user id a
    membership change is aimed at.
    """
    ctx = _Ctx(principal=principal, subject=subject, fields=frozenset(fields))

    if principal.role != Role.admin:
        decision = RULES[action](ctx)
        if not decision.allowed:
            return decision

    hard = HARD_DENIALS.get(action)
    if hard is not None:
        denied = hard(ctx, target)
        if denied is not None:
            return denied

    return ALLOW

def can(principal: Principal, action: Action, subject: Any = None, **kw: Any) -> bool:
    return evaluate(principal, action, subject, **kw).allowed
