"""Global test fixtures and shared test infrastructure.

Provides:
- Environment variable defaults (must be set before any app import)
- A file-backed SQLite database per test with the lifecycle schema applied
- StaticSubjectDirectory / RecordingEventSink fakes for the service collaborators
- Service fixtures and a TestClient with dependency overrides
"""

from __future__ import annotations

import os

# Environment defaults: must be set before importing the app, which triggers
# pydantic Settings validation on import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-boot")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-lending.db")
os.environ.setdefault("ENABLE_HSTS", "false")

from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from app.api import deps
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import build_session_factory
from app.main import app
from app.services.applications import ApplicationLifecycleService
from app.services.decisions import DecisionService
from app.services.event_sink import ApplicationApprovedEvent


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class StaticSubjectDirectory:
    """Subject directory backed by a fixed set of known ids."""

    def __init__(self, known: set[str] | None = None) -> None:
        self.known = set(known or {"S1", "S2", "S3"})
        self.lookups: list[str] = []

    async def exists(self, subject_id: str) -> bool:
        self.lookups.append(subject_id)
        return subject_id in self.known


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: list[ApplicationApprovedEvent] = []

    async def publish(self, event: ApplicationApprovedEvent) -> None:
        self.events.append(event)


class FailingEventSink:
    def __init__(self) -> None:
        self.attempts = 0

    async def publish(self, event: ApplicationApprovedEvent) -> None:
        self.attempts += 1
        raise RuntimeError("event bus unavailable")


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def database_path(tmp_path):
    path = tmp_path / "lending.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest_asyncio.fixture
async def engine(database_path):
    # NullPool gives every session its own connection, so two sessions can
    # interleave the way concurrent requests do.
    async_engine = create_async_engine(
        f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool
    )
    yield async_engine
    await async_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def subjects() -> StaticSubjectDirectory:
    return StaticSubjectDirectory()


@pytest.fixture
def event_sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def lifecycle(session_factory, subjects) -> ApplicationLifecycleService:
    return ApplicationLifecycleService(session_factory, subjects)


@pytest.fixture
def decisions(session_factory, event_sink) -> DecisionService:
    return DecisionService(session_factory, event_sink)


@pytest_asyncio.fixture
async def pending_application(lifecycle):
    result = await lifecycle.create_application("S1", Decimal("50000"), term_months=60)
    assert result.ok
    return result.value


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def api_client(database_path, subjects, event_sink):
    """TestClient wired to services over the per-test database.

    The engine is built here rather than reusing the async ``engine`` fixture
    because TestClient runs the app on its own event loop.
    """
    api_engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    factory = build_session_factory(api_engine)
    lifecycle_service = ApplicationLifecycleService(factory, subjects)
    decision_service = DecisionService(factory, event_sink)
    app.dependency_overrides[deps.get_lifecycle_service] = lambda: lifecycle_service
    app.dependency_overrides[deps.get_decision_service] = lambda: decision_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    token = create_access_token("officer1")
    return {"Authorization": f"Bearer {token}"}
