from __future__ import annotations

import os
import time
import uuid

import requests
from rich import print

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:5001")

# seeded by scripts/seed.py
ADMIN_EMAIL = os.getenv("DEMO_ADMIN_EMAIL", "admin@example.com")
DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "password123")

def _headers(jwt: str | None) -> dict[str, str]:
    headers = {"content-type": "application/json"}
    if jwt:
        headers["authorization"] = f"bearer {jwt}"
    return headers

def post(path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    return requests.post(f"{BASE}{path}", headers=_headers(jwt), json=json, timeout=10)

def patch(path: str, *, jwt: str | None = None, json: dict | None = None) -> requests.Response:
    return requests.patch(f"{BASE}{path}", headers=_headers(jwt), json=json, timeout=10)

def get(path: str, *, jwt: str | None = None) -> requests.Response:
    return requests.get(f"{BASE}{path}", headers=_headers(jwt), timeout=10)

def register(username: str) -> tuple[str, str]:
    r = post(
        "/auth/register",
        json={
            "username": username,
            "name": username.title(),
            "email": f"{username}@example.com",
            "password": DEMO_PASSWORD,
        },
    )
    r.raise_for_status()
    data = r.json()["data"]
    return data["token"], data["user"]["id"]

def login(email: str) -> tuple[str, str]:
    r = post("/auth/login", json={"email": email, "password": DEMO_PASSWORD})
    r.raise_for_status()
    data = r.json()["data"]
    return data["token"], data["user"]["id"]

def expect(r: requests.Response, status: int, label: str) -> dict:
    body = r.json()
    if r.status_code != status:
        raise RuntimeError(f"{label}: expected {status}, got {r.status_code}: {body}")
    print(f"[green]{label}[/green] -> {r.status_code}")
    return body

def wait_ready(timeout_s: float = 30.0) -> None:
    deadline = time.time() + timeout_s
    last_err: Exception | None = None

    while time.time() < deadline:
        try:
            r = get("/ready")
            if r.status_code == 200:
                return
        except requests.RequestException as e:
            last_err = e
        time.sleep(0.5)

    if last_err:
        raise RuntimeError(f"api not ready after {timeout_s}s (last error: {last_err})")
    raise RuntimeError(f"api not ready after {timeout_s}s")

def main() -> None:
    print("[bold]demo: project ownership -> membership -> assignee completes task -> role guard[/bold]")

    wait_ready()
    print("[green]ready ok[/green]")

    suffix = uuid.uuid4().hex[:6]
    alice_jwt, _ = register(f"alice{suffix}")
    bob_jwt, bob_id = register(f"bob{suffix}")
    print("registered alice and bob (developers)")

    body = expect(
        post("/projects", jwt=alice_jwt, json={"title": "demo project", "description": "walkthrough"}),
        201,
        "alice creates project",
    )
    project_id = body["data"]["id"]
    print("members:", [m["username"] for m in body["data"]["members"]])

    expect(get(f"/projects/{project_id}", jwt=bob_jwt), 403, "bob reads project before joining")

    expect(
        post(f"/projects/{project_id}/members", jwt=alice_jwt, json={"userId": bob_id}),
        200,
        "alice adds bob",
    )

    body = expect(
        post(
            f"/projects/{project_id}/tasks",
            jwt=alice_jwt,
            json={"title": "demo task", "description": "finish the walkthrough", "assignedTo": bob_id},
        ),
        201,
        "alice creates task for bob",
    )
    task_id = body["data"]["id"]

    body = expect(
        patch(f"/tasks/{task_id}/status", jwt=bob_jwt, json={"status": "completed"}),
        200,
        "bob completes task",
    )
    print("completedAt:", body["data"]["completedAt"])

    body = expect(get(f"/tasks/{task_id}/history", jwt=alice_jwt), 200, "task history")
    for entry in body["data"]:
        print(f"  {entry['createdAt']} {entry['action']}: {entry['description']}")

    admin_jwt, admin_id = login(ADMIN_EMAIL)
    body = expect(
        patch(f"/users/{admin_id}/role", jwt=admin_jwt, json={"role": "Developer"}),
        400,
        "admin changes own role",
    )
    print("message:", body["message"])
    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
