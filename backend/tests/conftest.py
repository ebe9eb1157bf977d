from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
import sys
from typing import Any

import pytest
from fastapi.testclient import TestClient


# Ensure `import app.*` works when pytest chooses an import mode that
# doesn't automatically add the project root to sys.path.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


SESSION_SECRET = "test-session-secret"


@pytest.fixture()
def app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    # Isolated sqlite DB per test.
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("REGISTRY_DB_URL", f"sqlite+aiosqlite:///{db_path.as_posix()}")
    monkeypatch.setenv("REGISTRY_SESSION_SECRET", SESSION_SECRET)
    monkeypatch.setenv("REGISTRY_DOMAIN_NAME", "crates.io")

    # Clear settings cache and reset DB engine/sessionmaker.
    from app.core.settings import get_settings

    get_settings.cache_clear()

    from app.db import session as db_session

    db_session.reset_engine()

    # Import models so Base.metadata is fully populated.
    import app.models  # noqa: F401

    from app.db.base import Base

    async def _init_schema() -> None:
        engine = db_session.get_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_init_schema())

    from app.main import create_app

    yield create_app()

    asyncio.run(db_session.dispose_engines())
    db_session.reset_engine()
    get_settings.cache_clear()


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def run_db(app) -> Callable[[Callable[[Any], Awaitable[Any]]], Any]:
    """Run ``fn(session)`` against the test database and commit."""

    from app.db.session import get_sessionmaker

    def _run(fn: Callable[[Any], Awaitable[Any]]) -> Any:
        async def _inner() -> Any:
            async with get_sessionmaker()() as session:
                result = await fn(session)
                await session.commit()
                return result

        return asyncio.run(_inner())

    return _run
