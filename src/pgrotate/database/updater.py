"""
Apply a new password to a PostgreSQL role.
"""

from __future__ import annotations

import logging

import psycopg2
from psycopg2 import sql

from pgrotate.config import DatabaseSettings
from pgrotate.database.connection import ConnectFn, open_connection
from pgrotate.exceptions import DatabaseUpdateError
from pgrotate.models import CredentialRecord

logger = logging.getLogger(__name__)


def alter_password_statement(username: str, password: str) -> sql.Composed:
    """
    Build the password change statement for a role.

    The role name is quoted by the driver as an identifier and the
    password as a string literal. The statement is executed without
    parameters, so a `%` in either value is never read as a placeholder.
    """
    return sql.SQL("ALTER USER {} WITH PASSWORD {}").format(
        sql.Identifier(username), sql.Literal(password)
    )


class DatabaseCredentialUpdater:
    """
    Changes a role's password using the role's current credentials.

    The current user must be allowed to alter its own password, which
    PostgreSQL permits for any login role.
    """

    def __init__(
        self,
        settings: DatabaseSettings | None = None,
        connect: ConnectFn | None = None,
    ):
        self.settings = settings or DatabaseSettings()
        self._connect = connect

    def apply(self, current: CredentialRecord, pending: CredentialRecord) -> None:
        """
        Set the pending password on the current username.

        Args:
            current: Credentials that can log in today
            pending: Credentials holding the new password

        Raises:
            DatabaseUpdateError: If connecting or the statement fails
        """
        try:
            with open_connection(current, self.settings, self._connect) as conn:
                with conn.cursor() as cursor:
                    cursor.execute(
                        alter_password_statement(current.username, pending.password)
                    )
        except psycopg2.Error as e:
            raise DatabaseUpdateError(
                f"Failed to set password for user {current.username} on "
                f"{current.host}:{current.port}/{current.database}: "
                f"{type(e).__name__}: {e}"
            ) from e

        logger.info(
            "Updated password for user %s on %s:%s/%s",
            current.username,
            current.host,
            current.port,
            current.database,
        )
