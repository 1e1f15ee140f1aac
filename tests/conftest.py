# tests/conftest.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from taskflow.database import build_engine, get_db, locked_session
from taskflow.notification.notification_service import NotificationService
from taskflow.storage import Storage, create_tables
from taskflow.task.task_service import TaskService


@pytest.fixture()
def engine():
    """A brand-new in-memory store for every test."""
    eng = build_engine("sqlite://", echo=False)
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def storage(db) -> Storage:
    return Storage(db)


@pytest.fixture()
def service(storage) -> TaskService:
    return TaskService(storage, NotificationService(storage), transition_policy="any")


@pytest.fixture()
def admin(storage):
    return storage.create_user(
        {"username": "alex", "password": "x", "display_name": "Alex Morgan", "role": "admin"}
    )


@pytest.fixture()
def member(storage):
    return storage.create_user(
        {"username": "sarah", "password": "x", "display_name": "Sarah Chen", "role": "user"}
    )


@pytest.fixture()
def workspace(storage):
    return storage.create_workspace({"name": "W"})


@pytest.fixture()
def client(session_factory):
    """
    TestClient on the real app, with get_db pointed at the per-test store.
    """
    from taskflow.main import app

    def override_get_db():
        with locked_session(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
