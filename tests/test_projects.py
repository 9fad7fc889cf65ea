import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taskhub.models.enums import Role
from taskhub.models.task import Task, TaskComment
from taskhub.models.task_log import TaskLog

def test_create_merges_members_uniquely(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    r = client.post(
        "/projects",
        json={
            "title": "Apollo",
            "description": "moon shot",
            "members": [str(bob.id), str(bob.id), str(alice.id)],
        },
        headers=alice.headers,
    )
    assert r.status_code == 201, r.text
    members = [m["id"] for m in r.json()["data"]["members"]]
    assert sorted(members) == sorted([str(alice.id), str(bob.id)])

def test_create_with_unknown_member_is_404(client, make_user):
    alice = make_user("alice")
    r = client.post(
        "/projects",
        json={"title": "Apollo", "description": "moon shot", "members": [str(uuid.uuid4())]},
        headers=alice.headers,
    )
    assert r.status_code == 404, r.text
    assert r.json() == {"success": False, "message": "User not found"}

def test_only_owner_updates(client, make_user, make_project):
    alice = make_user("alice")
    bob = make_user("bob")
    mgr = make_user("mona", Role.manager)
    project = make_project(alice, members=[bob])

    for who in (bob, mgr):
        r = client.put(f"/projects/{project['id']}", json={"title": "Renamed"}, headers=who.headers)
        assert r.status_code == 403, r.text

    r = client.put(
        f"/projects/{project['id']}", json={"title": "Renamed", "status": "completed"}, headers=alice.headers
    )
    assert r.status_code == 200, r.text
    assert r.json()["data"]["title"] == "Renamed"
    assert r.json()["data"]["status"] == "completed"

def test_owner_cannot_be_removed(client, make_user, make_project):
    alice = make_user("alice")
    admin = make_user("root", Role.admin)
    project = make_project(alice)

    for who in (alice, admin):
        r = client.delete(f"/projects/{project['id']}/members/{alice.id}", headers=who.headers)
        assert r.status_code == 400, r.text
        assert r.json()["message"] == "Cannot remove the project owner from the project"

    # no standing on the project means no say, owner or not
    stranger = make_user("sam")
    r = client.delete(f"/projects/{project['id']}/members/{alice.id}", headers=stranger.headers)
    assert r.status_code == 403, r.text
    assert r.json()["message"] == "Not authorized to manage members of this project"

def test_member_management(client, make_user, make_project):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    mgr = make_user("mona", Role.manager)
    project = make_project(alice, members=[bob])
    pid = project["id"]

    # a plain member cannot add people
    r = client.post(f"/projects/{pid}/members", json={"userId": str(carol.id)}, headers=bob.headers)
    assert r.status_code == 403, r.text

    r = client.post(f"/projects/{pid}/members", json={"userId": str(bob.id)}, headers=alice.headers)
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "User is already a member of this project"

    # managers manage members even on projects they have no part in
    r = client.post(f"/projects/{pid}/members", json={"userId": str(carol.id)}, headers=mgr.headers)
    assert r.status_code == 200, r.text

    r = client.get(f"/projects/{pid}/members", headers=alice.headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["totalMembers"] == 3

    r = client.delete(f"/projects/{pid}/members/{carol.id}", headers=alice.headers)
    assert r.status_code == 200, r.text

    r = client.delete(f"/projects/{pid}/members/{carol.id}", headers=alice.headers)
    assert r.status_code == 400, r.text
    assert r.json()["message"] == "User is not a member of this project"

def test_delete_cascades_to_tasks_and_logs(client, db_session: Session, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    project = make_project(alice, members=[bob])
    task = make_task(alice, project["id"], assignedTo=str(bob.id))

    r = client.post(f"/tasks/{task['id']}/comments", json={"content": "on it"}, headers=bob.headers)
    assert r.status_code == 200, r.text

    # only the owner may delete
    r = client.delete(f"/projects/{project['id']}", headers=bob.headers)
    assert r.status_code == 403, r.text

    r = client.delete(f"/projects/{project['id']}", headers=alice.headers)
    assert r.status_code == 200, r.text

    tid = uuid.UUID(task["id"])
    assert db_session.get(Task, tid) is None
    assert db_session.scalar(select(func.count()).select_from(TaskLog).where(TaskLog.task_id == tid)) == 0
    assert db_session.scalar(select(func.count()).select_from(TaskComment).where(TaskComment.task_id == tid)) == 0

    r = client.get(f"/projects/{project['id']}", headers=alice.headers)
    assert r.status_code == 404, r.text

def test_project_tasks_and_stats(client, make_user, make_project, make_task):
    alice = make_user("alice")
    bob = make_user("bob")
    stranger = make_user("sam")
    project = make_project(alice, members=[bob])
    pid = project["id"]

    r = client.post(
        f"/projects/{pid}/tasks",
        json={"title": "Draft", "description": "write it", "priority": "high"},
        headers=bob.headers,
    )
    assert r.status_code == 201, r.text
    done = r.json()["data"]

    make_task(alice, pid, "Build")
    r = client.patch(f"/tasks/{done['id']}/status", json={"status": "completed"}, headers=bob.headers)
    assert r.status_code == 200, r.text

    r = client.post(
        f"/projects/{pid}/tasks", json={"title": "Nope", "description": "nope"}, headers=stranger.headers
    )
    assert r.status_code == 403, r.text

    r = client.get(f"/projects/{pid}/tasks", params={"status": "completed"}, headers=alice.headers)
    assert r.status_code == 200, r.text
    assert [t["id"] for t in r.json()["data"]] == [done["id"]]

    r = client.get(f"/projects/{pid}/stats", headers=bob.headers)
    assert r.status_code == 200, r.text
    stats = r.json()["data"]
    assert stats["tasks"]["total"] == 2
    assert stats["tasks"]["completed"] == 1
    assert stats["tasks"]["pending"] == 1
    assert stats["priority"] == {"high": 1, "medium": 1, "low": 0}
    assert stats["project"]["completionPercentage"] == 50
