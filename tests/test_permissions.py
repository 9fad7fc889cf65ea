import uuid

import pytest

from taskhub.models.enums import Role
from taskhub.rbac.perms import Action, Outcome, Principal, can, evaluate
from taskhub.rbac.subjects import ProjectAccess, TaskAccess, UserTarget

OWNER = uuid.uuid4()
MEMBER = uuid.uuid4()
CREATOR = uuid.uuid4()
ASSIGNEE = uuid.uuid4()
STRANGER = uuid.uuid4()

PROJECT = ProjectAccess(id=uuid.uuid4(), owner_id=OWNER, member_ids=frozenset({OWNER, MEMBER, CREATOR}))
TASK = TaskAccess(id=uuid.uuid4(), project=PROJECT, created_by=CREATOR, assigned_to=ASSIGNEE)

def dev(user_id: uuid.UUID) -> Principal:
    return Principal(id=user_id, role=Role.developer)

def manager(user_id: uuid.UUID | None = None) -> Principal:
    return Principal(id=user_id or uuid.uuid4(), role=Role.manager)

def admin(user_id: uuid.UUID | None = None) -> Principal:
    return Principal(id=user_id or uuid.uuid4(), role=Role.admin)

@pytest.mark.parametrize(
    "principal,allowed",
    [
        (dev(OWNER), True),
        (dev(MEMBER), True),
        (dev(STRANGER), False),
        (manager(), False),
        (admin(), True),
    ],
)
def test_view_project(principal, allowed):
    assert can(principal, Action.view_project, PROJECT) is allowed

def test_update_and_delete_project_owner_only():
    for action in (Action.update_project, Action.delete_project):
        assert can(dev(OWNER), action, PROJECT)
        assert not can(dev(MEMBER), action, PROJECT)
        assert not can(manager(), action, PROJECT)
        assert can(admin(), action, PROJECT)

def test_create_project_any_role():
    for p in (dev(STRANGER), manager(), admin()):
        assert can(p, Action.create_project)

def test_manager_manages_members_of_unrelated_project():
    d = evaluate(manager(), Action.add_member, PROJECT, target=STRANGER)
    assert d.allowed

    d = evaluate(dev(MEMBER), Action.add_member, PROJECT, target=STRANGER)
    assert d.outcome is Outcome.forbidden

def test_owner_removal_rejected_for_everyone():
    for p in (dev(OWNER), manager(), admin()):
        d = evaluate(p, Action.remove_member, PROJECT, target=OWNER)
        assert d.outcome is Outcome.rejected
        assert d.reason == "Cannot remove the project owner from the project"

def test_owner_removal_by_outsider_is_forbidden_first():
    d = evaluate(dev(STRANGER), Action.remove_member, PROJECT, target=OWNER)
    assert d.outcome is Outcome.forbidden
    assert d.reason == "Not authorized to manage members of this project"

    d = evaluate(dev(MEMBER), Action.remove_member, PROJECT, target=OWNER)
    assert d.outcome is Outcome.forbidden

@pytest.mark.parametrize(
    "principal,allowed",
    [
        (dev(CREATOR), True),
        (dev(ASSIGNEE), True),
        (dev(OWNER), True),
        (dev(MEMBER), True),
        (dev(STRANGER), False),
        (manager(), False),
        (admin(), True),
    ],
)
def test_view_task(principal, allowed):
    assert can(principal, Action.view_task, TASK) is allowed

def test_create_task():
    assert can(dev(MEMBER), Action.create_task, PROJECT)
    assert can(dev(OWNER), Action.create_task, PROJECT)
    assert can(manager(), Action.create_task, PROJECT)
    assert not can(dev(STRANGER), Action.create_task, PROJECT)

def test_assignee_limited_to_status_and_hours():
    assert can(dev(ASSIGNEE), Action.update_task, TASK, fields={"status"})
    assert can(dev(ASSIGNEE), Action.update_task, TASK, fields={"status", "actual_hours"})

    d = evaluate(dev(ASSIGNEE), Action.update_task, TASK, fields={"status", "title"})
    assert d.outcome is Outcome.forbidden
    assert d.reason == "Assignees can only update status and actual hours"

def test_general_update_rules():
    fields = {"title", "priority"}
    assert can(dev(CREATOR), Action.update_task, TASK, fields=fields)
    assert can(dev(OWNER), Action.update_task, TASK, fields=fields)
    assert can(manager(), Action.update_task, TASK, fields=fields)
    # plain membership is not enough to edit
    assert not can(dev(MEMBER), Action.update_task, TASK, fields=fields)

def test_unassigned_task_has_no_assignee_path():
    task = TaskAccess(id=uuid.uuid4(), project=PROJECT, created_by=CREATOR, assigned_to=None)
    assert not can(dev(STRANGER), Action.update_task, task, fields={"status"})

@pytest.mark.parametrize(
    "principal,allowed",
    [
        (dev(CREATOR), True),
        (dev(ASSIGNEE), True),
        (dev(OWNER), True),
        (dev(MEMBER), True),
        (dev(STRANGER), False),
        (manager(), False),
        (admin(), True),
    ],
)
def test_progress_task(principal, allowed):
    d = evaluate(principal, Action.progress_task, TASK)
    assert d.allowed is allowed
    if not allowed:
        assert d.reason == "Not authorized to update this task"

def test_delete_and_assign_task():
    for action in (Action.delete_task, Action.assign_task):
        assert can(dev(CREATOR), action, TASK)
        assert can(dev(OWNER), action, TASK)
        assert can(manager(), action, TASK)
        assert not can(dev(ASSIGNEE), action, TASK)
        assert not can(dev(MEMBER), action, TASK)

def test_creator_can_reassign_after_leaving_project():
    project = ProjectAccess(id=PROJECT.id, owner_id=OWNER, member_ids=frozenset({OWNER}))
    task = TaskAccess(id=TASK.id, project=project, created_by=CREATOR, assigned_to=ASSIGNEE)
    assert can(dev(CREATOR), Action.assign_task, task)

def test_user_rules():
    me = uuid.uuid4()
    target = UserTarget(id=me)

    assert can(dev(me), Action.view_user, target)
    assert can(dev(me), Action.update_user, target)
    assert not can(dev(STRANGER), Action.view_user, target)
    assert can(manager(), Action.view_user, target)
    assert not can(manager(), Action.update_user, target)

    assert can(manager(), Action.list_users)
    assert not can(dev(me), Action.list_users)

@pytest.mark.parametrize("action", [Action.change_role, Action.set_user_status, Action.delete_user])
def test_admin_only_actions_forbid_others(action):
    target = UserTarget(id=uuid.uuid4())
    d = evaluate(manager(), action, target)
    assert d.outcome is Outcome.forbidden
    assert d.reason == "Access denied. Admin role required."
    assert can(admin(), action, target)

def test_admin_cannot_change_own_role_or_delete_self():
    me = admin()
    d = evaluate(me, Action.change_role, UserTarget(id=me.id))
    assert d.outcome is Outcome.rejected
    assert d.reason == "Cannot change your own role"

    d = evaluate(me, Action.delete_user, UserTarget(id=me.id))
    assert d.outcome is Outcome.rejected
    assert d.reason == "Cannot delete your own account"

def test_delete_user_with_open_work_rejected_with_counts():
    target = UserTarget(id=uuid.uuid4(), owned_projects=2, open_assigned_tasks=1)
    d = evaluate(admin(), Action.delete_user, target)
    assert d.outcome is Outcome.rejected
    assert d.details == {"ownedProjects": 2, "assignedTasks": 1}

def test_non_admin_self_delete_is_forbidden_not_rejected():
    me = manager()
    d = evaluate(me, Action.delete_user, UserTarget(id=me.id))
    assert d.outcome is Outcome.forbidden
