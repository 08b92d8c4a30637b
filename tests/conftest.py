import os

# must be set before taskboard.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SESSION_SECRET", "test-secret")

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from taskboard.db import Base, get_db
from taskboard.main import app
from taskboard.models import Project, Task, User
from taskboard.reorder import TaskReindexer
from taskboard.security import hash_password
from taskboard.store import TaskStore


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'taskboard.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def user(db):
    u = User(id=str(uuid4()), email="pm@example.com", name="Pat", password_hash=hash_password("s3cret"))
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def project(db):
    p = Project(id=str(uuid4()), name="Website relaunch")
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def reindexer(db):
    return TaskReindexer(TaskStore(db))


@pytest.fixture
def add_tasks(reindexer, project, user):
    """Append titled tasks to a column; returns {title: id}."""

    def _add(status, titles, project_id=None):
        ids = {}
        for title in titles:
            t = Task(
                id=str(uuid4()),
                project_id=project_id or project.id,
                title=title,
                status=status,
                created_by_id=user.id,
            )
            reindexer.append(t)
            ids[title] = t.id
        return ids

    return _add


@pytest.fixture
def column(db, project):
    """[(title, order), ...] of a column as currently stored."""

    def _column(status, project_id=None):
        db.expire_all()
        rows = (
            db.query(Task)
            .filter(Task.project_id == (project_id or project.id), Task.status == status)
            .order_by(Task.order.asc())
            .all()
        )
        return [(t.title, t.order) for t in rows]

    return _column


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client, user):
    resp = client.post("/api/auth/login", json={"email": "pm@example.com", "password": "s3cret"})
    assert resp.status_code == 200
    return client
