"""
Verify that credentials can log in and run queries.
"""

from __future__ import annotations

import logging
from typing import Any

import psycopg2

from pgrotate.config import DatabaseSettings
from pgrotate.database.connection import ConnectFn, open_connection
from pgrotate.exceptions import CredentialVerificationError
from pgrotate.models import CredentialRecord

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """
    Logs in with a credential record and runs a liveness check.

    Attributes:
        PROBE_QUERY: Query executed after login
        EXPECTED_VALUE: Value the check must return
    """

    PROBE_QUERY = "SELECT 1"
    EXPECTED_VALUE = 1

    def __init__(
        self,
        settings: DatabaseSettings | None = None,
        connect: ConnectFn | None = None,
    ):
        self.settings = settings or DatabaseSettings()
        self._connect = connect

    def _check(self, record: CredentialRecord) -> Any:
        with open_connection(record, self.settings, self._connect) as conn:
            with conn.cursor() as cursor:
                cursor.execute(self.PROBE_QUERY)
                row = cursor.fetchone()
        return row[0] if row else None

    def verify(self, record: CredentialRecord) -> None:
        """
        Check that record can log in and the check returns the expected value.

        Raises:
            CredentialVerificationError: On any connection, login or query
                failure, or an unexpected check result
        """
        try:
            value = self._check(record)
        except psycopg2.Error as e:
            raise CredentialVerificationError(
                f"Could not log in as {record.username} on "
                f"{record.host}:{record.port}/{record.database}: "
                f"{type(e).__name__}: {e}"
            ) from e

        if value != self.EXPECTED_VALUE:
            raise CredentialVerificationError(
                f"Probe query returned {value!r} for {record.username}, "
                f"expected {self.EXPECTED_VALUE!r}"
            )

        logger.info(
            "Verified login as %s on %s:%s/%s",
            record.username,
            record.host,
            record.port,
            record.database,
        )

    def can_authenticate(self, record: CredentialRecord) -> bool:
        """Check whether record can log in, without raising."""
        try:
            return self._check(record) == self.EXPECTED_VALUE
        except psycopg2.Error as e:
            logger.debug("Login as %s failed: %s", record.username, type(e).__name__)
            return False
