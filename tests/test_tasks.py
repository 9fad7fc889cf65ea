import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from taskhub.models.enums import Role
from taskhub.models.task import Task

def _history(client, task_id: str, who) -> list[dict]:
    r = client.get(f"/tasks/{task_id}/history", headers=who.headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]

def test_create_requires_project(client, make_user):
    alice = make_user("alice")
    r = client.post("/tasks", json={"title": "t", "description": "d"}, headers=alice.headers)
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "Title, description, and project are required"

    r = client.post(
        "/tasks", json={"title": "t", "description": "d", "project": str(uuid.uuid4())}, headers=alice.headers
    )
    assert r.status_code == 404, r.text
    assert r.json()["message"] == "Project not found"

def test_creator_and_assignee_are_watchers(client, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    project = make_project(alice, members=[bob])

    task = make_task(alice, project["id"])
    assert [w["id"] for w in task["watchers"]] == [str(alice.id)]
    assert task["createdBy"] == str(alice.id)
    assert task["status"] == "pending"
    assert task["completedAt"] is None

    r = client.patch(f"/tasks/{task['id']}/assign", json={"userId": str(bob.id)}, headers=alice.headers)
    assert r.status_code == 200, r.text
    watchers = {w["id"] for w in r.json()["data"]["watchers"]}
    assert watchers == {str(alice.id), str(bob.id)}

    # neither can be dropped from the watch list
    for uid in (alice.id, bob.id):
        r = client.delete(f"/tasks/{task['id']}/watchers/{uid}", headers=alice.headers)
        assert r.status_code == 400, r.text

def test_extra_watchers(client, make_user, make_project, make_task):
    alice = make_user("alice")
    carol = make_user("carol")
    project = make_project(alice, members=[carol])
    task = make_task(alice, project["id"])

    r = client.post(f"/tasks/{task['id']}/watchers", json={"userId": str(carol.id)}, headers=carol.headers)
    assert r.status_code == 200, r.text
    assert str(carol.id) in {w["id"] for w in r.json()["data"]["watchers"]}

    r = client.delete(f"/tasks/{task['id']}/watchers/{carol.id}", headers=carol.headers)
    assert r.status_code == 200, r.text
    assert [w["id"] for w in r.json()["data"]["watchers"]] == [str(alice.id)]

def test_completed_at_tracks_status(client, db_session: Session, make_user, make_project, make_task):
    alice = make_user("alice")
    project = make_project(alice)
    task = make_task(alice, project["id"])
    tid = task["id"]

    r = client.patch(f"/tasks/{tid}/status", json={"status": "completed"}, headers=alice.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["completedAt"] is not None

    r = client.patch(f"/tasks/{tid}/status", json={"status": "in-progress"}, headers=alice.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["completedAt"] is None

    # completing through the general update path stamps it too
    r = client.put(f"/tasks/{tid}", json={"status": "completed"}, headers=alice.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["completedAt"] is not None

    row = db_session.get(Task, uuid.UUID(tid))
    db_session.refresh(row)
    assert row.completed_at is not None

def test_invalid_status(client, make_user, make_project, make_task):
    alice = make_user("alice")
    task = make_task(alice, make_project(alice)["id"])

    r = client.patch(f"/tasks/{task['id']}/status", json={"status": "done"}, headers=alice.headers)
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "Invalid status. Must be: pending, in-progress, or completed"

def test_same_status_is_not_logged(client, make_user, make_project, make_task):
    alice = make_user("alice")
    task = make_task(alice, make_project(alice)["id"])

    r = client.patch(f"/tasks/{task['id']}/status", json={"status": "pending"}, headers=alice.headers)
    assert r.status_code == 200, r.text
    assert [e["action"] for e in _history(client, task["id"], alice)] == ["created"]

def test_assignee_field_restriction(client, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    project = make_project(alice, members=[bob])
    task = make_task(alice, project["id"], assignedTo=str(bob.id))
    tid = task["id"]

    r = client.put(f"/tasks/{tid}", json={"status": "in-progress", "actualHours": 2}, headers=bob.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["actualHours"] == 2

    r = client.put(f"/tasks/{tid}", json={"status": "completed", "title": "mine now"}, headers=bob.headers)
    assert r.status_code == 403, r.text
    assert r.json()["message"] == "Assignees can only update status and actual hours"

    r = client.patch(f"/tasks/{tid}/progress", json={"actualHours": 3.5}, headers=bob.headers)
    assert r.status_code == 200, r.text

    r = client.patch(f"/tasks/{tid}/progress", json={"actualHours": -1}, headers=bob.headers)
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "Actual hours cannot be negative"

    # assignment stays with owner, creator and managers
    r = client.patch(f"/tasks/{tid}/assign", json={"userId": None}, headers=bob.headers)
    assert r.status_code == 403, r.text

def test_unknown_update_keys_are_refused(client, make_user, make_project, make_task):
    alice = make_user("alice")
    task = make_task(alice, make_project(alice)["id"])

    r = client.put(f"/tasks/{task['id']}", json={"status": "pending", "owner": "me"}, headers=alice.headers)
    assert r.status_code == 400, r.text

def test_member_without_standing_cannot_edit(client, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    mgr = make_user("mona", Role.manager)
    project = make_project(alice, members=[bob])
    task = make_task(alice, project["id"])

    r = client.get(f"/tasks/{task['id']}", headers=bob.headers)
    assert r.status_code == 200, r.text

    r = client.put(f"/tasks/{task['id']}", json={"title": "x"}, headers=bob.headers)
    assert r.status_code == 403, r.text

    r = client.delete(f"/tasks/{task['id']}", headers=bob.headers)
    assert r.status_code == 403, r.text

    # managers may edit without being related, but still cannot read the project
    r = client.put(f"/tasks/{task['id']}", json={"priority": "high"}, headers=mgr.headers)
    assert r.status_code == 200, r.text
    r = client.get(f"/projects/{project['id']}", headers=mgr.headers)
    assert r.status_code == 403, r.text

    r = client.delete(f"/tasks/{task['id']}", headers=mgr.headers)
    assert r.status_code == 200, r.text
    r = client.get(f"/tasks/{task['id']}", headers=alice.headers)
    assert r.status_code == 404, r.text

def test_status_and_progress_need_a_relation(client, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    mgr = make_user("mona", Role.manager)
    project = make_project(alice, members=[bob])
    task = make_task(alice, project["id"])

    # bob is only a project member, neither creator nor assignee
    r = client.patch(f"/tasks/{task['id']}/status", json={"status": "in-progress"}, headers=bob.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["status"] == "in-progress"
    r = client.patch(f"/tasks/{task['id']}/progress", json={"actualHours": 3}, headers=bob.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["actualHours"] == 3

    # the manager role alone is not enough here
    r = client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=mgr.headers)
    assert r.status_code == 403, r.text
    assert r.json()["message"] == "Not authorized to update this task"
    r = client.patch(f"/tasks/{task['id']}/progress", json={"actualHours": 5}, headers=mgr.headers)
    assert r.status_code == 403, r.text

    r = client.get(f"/tasks/{task['id']}", headers=alice.headers)
    assert r.json()["data"]["status"] == "in-progress"
    assert r.json()["data"]["actualHours"] == 3

def test_history_newest_first(client, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    project = make_project(alice, members=[bob])
    task = make_task(alice, project["id"])
    tid = task["id"]

    due = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
    r = client.put(f"/tasks/{tid}", json={"priority": "high", "dueDate": due}, headers=alice.headers)
    assert r.status_code == 200, r.text
    client.patch(f"/tasks/{tid}/assign", json={"userId": str(bob.id)}, headers=alice.headers)
    client.patch(f"/tasks/{tid}/status", json={"status": "in-progress"}, headers=bob.headers)
    client.post(f"/tasks/{tid}/comments", json={"content": "halfway"}, headers=bob.headers)

    entries = _history(client, tid, alice)
    assert [e["action"] for e in entries] == [
        "comment_added",
        "status_changed",
        "assigned",
        "due_date_changed",
        "priority_changed",
        "created",
    ]
    assert entries[1]["field"] == "status"
    assert entries[1]["oldValue"] == "pending"
    assert entries[1]["newValue"] == "in-progress"
    assert entries[1]["changedBy"] == str(bob.id)
    assert entries[2]["field"] == "assignedTo"

def test_history_is_capped(client, settings, make_user, make_project, make_task):
    alice = make_user("alice")
    task = make_task(alice, make_project(alice)["id"])

    for i in range(settings.task_history_limit + 5):
        client.patch(f"/tasks/{task['id']}/progress", json={"actualHours": i + 1}, headers=alice.headers)

    entries = _history(client, task["id"], alice)
    assert len(entries) == settings.task_history_limit
    assert entries[0]["newValue"] == settings.task_history_limit + 5

def test_comments(client, make_user, make_project, make_task):
    alice = make_user("alice")
    stranger = make_user("sam")
    task = make_task(alice, make_project(alice)["id"])

    r = client.post(f"/tasks/{task['id']}/comments", json={"content": "   "}, headers=alice.headers)
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "Comment content is required"

    r = client.post(f"/tasks/{task['id']}/comments", json={"content": "hi"}, headers=stranger.headers)
    assert r.status_code == 403, r.text

    r = client.post(f"/tasks/{task['id']}/comments", json={"content": "first"}, headers=alice.headers)
    assert r.status_code == 200, r.text
    comments = r.json()["data"]["comments"]
    assert [c["content"] for c in comments] == ["first"]
    assert comments[0]["author"]["id"] == str(alice.id)

def test_derived_fields(client, make_user, make_project, make_task):
    alice = make_user("alice")
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    task = make_task(alice, make_project(alice)["id"], dueDate=past, estimatedHours=4)

    assert task["isOverdue"] is True
    assert task["timeRemaining"] == "Overdue"
    assert task["progressPercentage"] == 0

    r = client.patch(f"/tasks/{task['id']}/progress", json={"actualHours": 2}, headers=alice.headers)
    assert r.json()["data"]["progressPercentage"] == 50

    r = client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=alice.headers)
    assert r.json()["data"]["isOverdue"] is False
