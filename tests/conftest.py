"""Pytest configuration."""

import os

# Settings are read at import time; keep the app off PostgreSQL and migrations.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RUN_MIGRATIONS", "false")

from collections.abc import AsyncGenerator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from devtrack.core.config import get_client_settings  # noqa: E402
from devtrack.db.base import Base  # noqa: E402
from devtrack.db.session import create_engine_for, create_session_maker  # noqa: E402


@pytest.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine so concurrent sessions get separate connections."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'devtrack.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_maker(db_engine)


@pytest.fixture
def count_rows(session_maker):
    """Count rows of a model in a fresh session."""

    async def _count(model) -> int:
        async with session_maker() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    return _count


@pytest.fixture
async def api_client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app, one database session per request."""
    from devtrack.api.deps import get_db_session
    from devtrack.main import app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def client_env(monkeypatch, tmp_path):
    """Point the client agent at a local store under tmp_path."""
    monkeypatch.setenv("DEVTRACK_DATABASE_PATH", str(tmp_path / "client" / "events.db"))
    monkeypatch.delenv("DEVTRACK_SERVER_URL", raising=False)
    get_client_settings.cache_clear()
    yield tmp_path / "client" / "events.db"
    get_client_settings.cache_clear()


@pytest.fixture
def submission():
    """Factory for valid POST /events bodies."""

    def _submission(**overrides) -> dict:
        body = {
            "activity_type": "save",
            "app_name": "editorX",
            "entity_name": "main.rs",
            "entity_type": "file",
            "project_name": "demo",
            "project_path": "/tmp/demo",
            "branch_name": "main",
            "language_name": "rust",
        }
        body.update(overrides)
        return body

    return _submission
