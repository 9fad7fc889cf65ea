import os
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskhub.config import Settings
from taskhub.db import get_db
from taskhub.main import create_app
from taskhub.models import Base
from taskhub.models.enums import Role
from taskhub.models.user import User

def _engine():
    database_url = os.environ.get("DATABASE_URL", "sqlite://")
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # sqlite leaves foreign keys off unless asked; cascades depend on them
    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_conn, _record) -> None:  # type: ignore[no-untyped-def]
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    return engine

@pytest.fixture()
def settings() -> Settings:
    return Settings(
        app_env="test",
        database_url="sqlite://",
        redis_url="redis://localhost:6379/15",
        rate_limit_enabled=False,
        bcrypt_rounds=4,
        jwt_secret="test-secret",
    )

@pytest.fixture()
def db_session() -> Session:
    engine = _engine()
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()

@pytest.fixture()
def client(db_session: Session, settings: Settings) -> TestClient:
    app = create_app(settings)

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return TestClient(app)

@dataclass
class Account:
    id: uuid.UUID
    username: str
    email: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return auth(self.token)

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def promote(db: Session, email: str, role: Role) -> None:
    user = db.scalar(select(User).where(User.email == email.lower()))
    assert user is not None

    user.role = role
    db.commit()

@pytest.fixture()
def make_user(client: TestClient, db_session: Session) -> Callable[..., Account]:
    """Register through the API, then set the role directly (registration is always Developer)."""

    def _make(username: str, role: Role = Role.developer, password: str = "secret123") -> Account:
        email = f"{username}@example.com"
        r = client.post(
            "/auth/register",
            json={"username": username, "name": username.title(), "email": email, "password": password},
        )
        assert r.status_code == 201, r.text
        data = r.json()["data"]

        if role != Role.developer:
            promote(db_session, email, role)
        return Account(
            id=uuid.UUID(data["user"]["id"]),
            username=username,
            email=email,
            token=data["token"],
        )

    return _make

@pytest.fixture()
def make_project(client: TestClient) -> Callable[..., dict]:
    def _make(owner: Account, title: str = "Apollo", members: list[Account] = ()) -> dict:
        r = client.post(
            "/projects",
            json={
                "title": title,
                "description": f"{title} description",
                "members": [str(m.id) for m in members],
            },
            headers=owner.headers,
        )
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _make

@pytest.fixture()
def make_task(client: TestClient) -> Callable[..., dict]:
    def _make(actor: Account, project_id: str, title: str = "Write docs", **fields) -> dict:
        body = {"title": title, "description": f"{title} description", "project": project_id, **fields}
        r = client.post("/tasks", json=body, headers=actor.headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _make
