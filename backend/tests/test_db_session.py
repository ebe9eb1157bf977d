from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.core.settings import Settings, get_settings
from app.db import session as db_session


def test_connection_setup_statements() -> None:
    settings = Settings(db_statement_timeout_s=5)

    assert db_session.connection_setup_statements(settings, read_only=False) == [
        "SET statement_timeout = 5000"
    ]
    assert db_session.connection_setup_statements(settings, read_only=True) == [
        "SET statement_timeout = 5000",
        "SET default_transaction_read_only = 't'",
    ]


def test_database_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGISTRY_DB_READ_ONLY_MODE", "true")
    monkeypatch.setenv("REGISTRY_DB_REPLICA_URL", "postgresql+asyncpg://replica/cargo")
    monkeypatch.setenv("REGISTRY_DB_STATEMENT_TIMEOUT_S", "10")

    settings = Settings()

    assert settings.db_read_only_mode is True
    assert settings.db_replica_url == "postgresql+asyncpg://replica/cargo"
    assert settings.db_statement_timeout_s == 10


def test_defaults_keep_primary_writable() -> None:
    settings = Settings()

    assert settings.db_read_only_mode is False
    assert settings.db_replica_url is None


def test_reads_use_primary_without_replica(app) -> None:
    assert db_session.get_read_only_engine() is db_session.get_engine()
    assert db_session.get_read_only_sessionmaker() is db_session.get_sessionmaker()


def test_reads_use_replica_when_configured(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(
        "REGISTRY_DB_URL", f"sqlite+aiosqlite:///{tmp_path / 'primary.db'}"
    )
    monkeypatch.setenv(
        "REGISTRY_DB_REPLICA_URL", f"sqlite+aiosqlite:///{tmp_path / 'replica.db'}"
    )
    get_settings.cache_clear()
    db_session.reset_engine()
    try:
        replica = db_session.get_read_only_engine()

        assert replica is not db_session.get_engine()
        assert replica.url.database.endswith("replica.db")
        assert db_session.get_read_only_engine() is replica
        assert db_session.get_read_only_sessionmaker().kw["bind"] is replica
    finally:
        db_session.reset_engine()
        get_settings.cache_clear()


@pytest.mark.parametrize(
    "path",
    [
        "/api/v1/keywords",
        "/api/v1/keywords/nope",
        "/api/v1/crates/nope/1.0.0",
        "/api/v1/crates/nope/downloads",
    ],
)
def test_get_endpoints_read_through_read_only_session(app, path: str) -> None:
    used: list[str] = []

    async def recording_read_only_db():
        used.append(path)
        async with db_session.get_sessionmaker()() as session:
            yield session

    app.dependency_overrides[db_session.get_read_only_db] = recording_read_only_db
    client = TestClient(app)

    client.get(path)

    assert used == [path]
