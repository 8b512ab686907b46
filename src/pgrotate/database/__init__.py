"""
PostgreSQL access for credential rotation.

- open_connection: scoped connection, closed on every exit path
- DatabaseCredentialUpdater: applies a pending password to the role
- CredentialVerifier: logs in with a credential and runs a liveness check
"""

from pgrotate.database.connection import connection_params, open_connection
from pgrotate.database.updater import DatabaseCredentialUpdater, alter_password_statement
from pgrotate.database.verifier import CredentialVerifier

__all__ = [
    "connection_params",
    "open_connection",
    "DatabaseCredentialUpdater",
    "alter_password_statement",
    "CredentialVerifier",
]
