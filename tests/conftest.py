"""
Pytest configuration and fixtures for pgrotate tests.

This module provides common fixtures used across unit and integration
tests, including an in-memory PostgreSQL stand-in that tracks role
passwords and open connections.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import psycopg2
import pytest
from psycopg2 import sql

from pgrotate.config import DatabaseSettings, RotationSettings
from pgrotate.database import CredentialVerifier, DatabaseCredentialUpdater
from pgrotate.models import CredentialRecord
from pgrotate.observability import configure_logging
from pgrotate.rotation import RotationOrchestrator
from pgrotate.store import InMemorySecretStore


class FakeCursor:
    """Cursor that understands the two statements rotation issues."""

    def __init__(self, server: FakePostgres, user: str):
        self._server = server
        self._user = user
        self._row: tuple[Any, ...] | None = None

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        pass

    def execute(self, query: Any, params: tuple[Any, ...] | None = None) -> None:
        self._server.executed.append((query, params))

        if self._server.fail_statements:
            raise psycopg2.ProgrammingError("permission denied to alter role")

        if isinstance(query, sql.Composed):
            text = FakePostgres.render(query)
            if params is not None:
                # The driver substitutes placeholders across the whole rendered text
                text = text % tuple(params)
            target = [p for p in query.seq if isinstance(p, sql.Identifier)]
            values = [p for p in query.seq if isinstance(p, sql.Literal)]
            if text.startswith("ALTER USER") and target and values:
                self._server.set_password(target[0].strings[0], values[0].wrapped)
                return
            raise psycopg2.ProgrammingError(f"unsupported statement: {text}")

        if query == "SELECT 1":
            self._row = (self._server.check_value,)
            return

        raise psycopg2.ProgrammingError(f"unsupported statement: {query}")

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._row


class FakeConnection:
    """Connection handed out by FakePostgres.connect."""

    def __init__(self, server: FakePostgres, user: str):
        self._server = server
        self._user = user
        self.autocommit = False
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self._server, self._user)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._server.release(self)


class FakePostgres:
    """
    In-memory PostgreSQL stand-in.

    Attributes:
        users: Role name to password
        executed: Every (query, params) pair executed
        connect_kwargs: Keyword arguments of every connect call
        fail_statements: Make every statement raise
        check_value: Value returned by SELECT 1
    """

    def __init__(self, users: dict[str, str] | None = None):
        self.users = dict(users or {})
        self.executed: list[tuple[Any, Any]] = []
        self.connect_kwargs: list[dict[str, Any]] = []
        self.open_connections: list[FakeConnection] = []
        self.fail_statements = False
        self.check_value: Any = 1
        self._lock = threading.Lock()

    def connect(self, **kwargs: Any) -> FakeConnection:
        with self._lock:
            self.connect_kwargs.append(kwargs)
            user = kwargs.get("user")
            if self.users.get(user) != kwargs.get("password"):
                raise psycopg2.OperationalError(
                    f'FATAL:  password authentication failed for user "{user}"'
                )
            conn = FakeConnection(self, user)
            self.open_connections.append(conn)
            return conn

    @staticmethod
    def render(query: sql.Composed) -> str:
        """Render a composed statement the way the driver quotes its parts."""
        parts = []
        for part in query.seq:
            if isinstance(part, sql.SQL):
                parts.append(part.string)
            elif isinstance(part, sql.Identifier):
                parts.append(".".join('"' + s.replace('"', '""') + '"' for s in part.strings))
            elif isinstance(part, sql.Literal):
                parts.append("'" + str(part.wrapped).replace("'", "''") + "'")
            else:
                raise psycopg2.ProgrammingError(f"unsupported statement part: {part!r}")
        return "".join(parts)

    def set_password(self, user: str, password: str) -> None:
        with self._lock:
            self.users[user] = password

    def release(self, conn: FakeConnection) -> None:
        with self._lock:
            self.open_connections.remove(conn)


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore default logging configuration for every test."""
    configure_logging(level="INFO", format="json")
    # caplog captures through the root logger
    logging.getLogger("pgrotate").propagate = True
    yield


@pytest.fixture
def current_record() -> CredentialRecord:
    """Return the credentials of the s1 secret's CURRENT version."""
    return CredentialRecord(
        host="db",
        port=5432,
        database="app",
        username="svc",
        password="old",
    )


@pytest.fixture
def store(current_record: CredentialRecord) -> InMemorySecretStore:
    """Return a store holding secret s1 with CURRENT version v1."""
    store = InMemorySecretStore()
    store.create_secret("s1", current_record, version_id="v1")
    return store


@pytest.fixture
def fake_db(current_record: CredentialRecord) -> FakePostgres:
    """Return a fake database where svc logs in with the old password."""
    return FakePostgres(users={current_record.username: current_record.password})


@pytest.fixture
def settings() -> RotationSettings:
    """Return default rotation settings."""
    return RotationSettings(database=DatabaseSettings(ssl_mode="require"))


@pytest.fixture
def orchestrator(
    store: InMemorySecretStore,
    fake_db: FakePostgres,
    settings: RotationSettings,
) -> RotationOrchestrator:
    """Return an orchestrator wired to the in-memory store and fake database."""
    return RotationOrchestrator(
        store=store,
        updater=DatabaseCredentialUpdater(settings.database, connect=fake_db.connect),
        verifier=CredentialVerifier(settings.database, connect=fake_db.connect),
        settings=settings,
    )
