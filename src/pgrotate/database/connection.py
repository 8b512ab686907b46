"""
Scoped PostgreSQL connections.

A rotation phase opens at most a couple of connections, each for a
single short operation, and closes them before returning. Nothing is
pooled: phases run as separate, possibly cold, invocations.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

import psycopg2

from pgrotate.config import DatabaseSettings
from pgrotate.models import CredentialRecord

logger = logging.getLogger(__name__)

ConnectFn = Callable[..., Any]


def connection_params(record: CredentialRecord, settings: DatabaseSettings) -> dict[str, Any]:
    """Build libpq connection keywords for a credential record."""
    params: dict[str, Any] = {
        "host": record.host,
        "port": record.port,
        "dbname": record.database,
        "user": record.username,
        "password": record.password,
        "sslmode": settings.ssl_mode,
        "connect_timeout": settings.connect_timeout,
    }
    if settings.ssl_root_cert:
        params["sslrootcert"] = settings.ssl_root_cert
    if settings.statement_timeout_ms:
        params["options"] = f"-c statement_timeout={settings.statement_timeout_ms}"
    return params


@contextmanager
def open_connection(
    record: CredentialRecord,
    settings: DatabaseSettings | None = None,
    connect: ConnectFn | None = None,
) -> Iterator[Any]:
    """
    Open an autocommit connection that is closed on every exit path.

    Args:
        record: Credentials to log in with
        settings: Connection settings
        connect: Connect function, psycopg2.connect by default

    Yields:
        Open DB-API connection
    """
    settings = settings or DatabaseSettings()
    connect = connect or psycopg2.connect

    conn = connect(**connection_params(record, settings))
    logger.debug(
        "Connected to %s:%s/%s as %s",
        record.host,
        record.port,
        record.database,
        record.username,
    )
    try:
        conn.autocommit = True
        yield conn
    finally:
        conn.close()
