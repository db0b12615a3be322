# tests/conftest.py

from __future__ import annotations

import os
import tempfile

# Keep the app's import-time storage and database out of the repo.
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="taskbuddy-test-"))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from pathlib import Path
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from taskbuddy.database import get_db
from taskbuddy.dependencies import get_change_feed, get_identity_provider, get_storage
from taskbuddy.main import app
from taskbuddy.schemas.auth import Identity
from taskbuddy.schemas.task import TaskCreate
from taskbuddy.security import create_access_token
from taskbuddy.services.board import TaskBoard
from taskbuddy.services.filters import TaskFilters
from taskbuddy.services.live import ChangeFeed
from taskbuddy.services.task_mutation import TaskMutationService
from taskbuddy.services.task_query import TaskQueryService
from taskbuddy.storage import ObjectStorage

from .fakes import FakeIdentityProvider

USER = "user-1"
OTHER_USER = "user-2"

# Wednesday; the week runs Sunday 2024-05-12 .. Saturday 2024-05-18
TODAY = date(2024, 5, 15)
FIXED_NOW = 1715774400.0


@pytest.fixture()
def engine():
    """Fresh in-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def storage(tmp_path: Path) -> ObjectStorage:
    return ObjectStorage(tmp_path / "storage")


@pytest.fixture()
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture()
def queries(session, storage) -> TaskQueryService:
    return TaskQueryService(session, storage)


@pytest.fixture()
def mutations(session, storage, feed) -> TaskMutationService:
    return TaskMutationService(session, storage, feed, clock=lambda: FIXED_NOW)


@pytest.fixture()
def make_task(mutations) -> Callable[..., str]:
    """Create a task through the mutation service and return its id."""

    def _make(
        title: str = "Task",
        *,
        user_id: str = USER,
        status: str = "To Do",
        category: str = "Work",
        due_date: Optional[date] = None,
        position: Optional[int] = None,
        description: str = "",
    ) -> str:
        data = TaskCreate(
            title=title,
            description=description,
            category=category,
            due_date=due_date,
            status=status,
            position=position,
        )
        return mutations.save_task(user_id, data)

    return _make


@pytest.fixture()
def board(queries, mutations, feed) -> TaskBoard:
    """Board over the unfiltered view in position order."""
    return TaskBoard(USER, queries, mutations, feed, filters=TaskFilters(sort_field=None), today=TODAY)


@pytest.fixture()
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider(
        {"good-code": Identity(id=USER, email="sam@example.com", user_metadata={"full_name": "Sam Doe"})}
    )


@pytest.fixture()
def client(engine, storage, feed, identity_provider):
    def override_db():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_change_feed] = lambda: feed
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user_id: str = USER) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}
