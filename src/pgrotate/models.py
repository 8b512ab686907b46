"""
Data models for credential rotation.

This module defines the value types that flow between the secret store,
the database layer and the rotation orchestrator:

- VersionStage / RotationStep enums
- CredentialRecord: the JSON payload stored in each secret version
- SecretVersion: a version as read back from the store
- RotationRequest: one invocation of the rotation function
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from pgrotate.exceptions import InvalidRequestError, InvalidStepError, MalformedCredentialError


class VersionStage(Enum):
    """Stage labels a secret version can carry."""

    CURRENT = "AWSCURRENT"
    PENDING = "AWSPENDING"
    PREVIOUS = "AWSPREVIOUS"


class RotationStep(Enum):
    """The four ordered phases of a rotation cycle."""

    CREATE_SECRET = "createSecret"
    SET_SECRET = "setSecret"
    TEST_SECRET = "testSecret"
    FINISH_SECRET = "finishSecret"

    @classmethod
    def parse(cls, value: str) -> RotationStep:
        """Look up a step by its wire name."""
        for step in cls:
            if step.value == value:
                return step
        raise InvalidStepError(value)


# Wire field names shared with the database connection layer
REQUIRED_FIELDS = ("host", "port", "dbname", "username", "password")


@dataclass(frozen=True)
class CredentialRecord:
    """
    Database credentials stored as a secret version payload.

    Attributes:
        host: Database host
        port: Database port
        database: Database name (``dbname`` on the wire)
        username: Login role whose password is rotated
        password: Login password
        extra: Any other keys found in the secret, carried forward as-is
    """

    host: str
    port: int
    database: str
    username: str
    password: str
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        for name in ("host", "database", "username", "password"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise MalformedCredentialError(f"Field '{name}' must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or self.port <= 0:
            raise MalformedCredentialError("Field 'port' must be a positive integer")

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(host={self.host!r}, port={self.port}, "
            f"database={self.database!r}, username={self.username!r}, password='***')"
        )

    def with_password(self, password: str) -> CredentialRecord:
        """Return a copy of this record with a different password."""
        return replace(self, password=password)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire dictionary."""
        data = dict(self.extra)
        data.update(
            {
                "host": self.host,
                "port": self.port,
                "dbname": self.database,
                "username": self.username,
                "password": self.password,
            }
        )
        return data

    def to_secret_string(self) -> str:
        """Serialize as the secret's string body."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CredentialRecord:
        """Create from the wire dictionary."""
        if not isinstance(data, dict):
            raise MalformedCredentialError("Secret payload must be a JSON object")

        missing = [name for name in REQUIRED_FIELDS if name not in data]
        if missing:
            raise MalformedCredentialError(
                f"Secret payload is missing fields: {', '.join(missing)}"
            )

        port = data["port"]
        if isinstance(port, str) and port.isdigit():
            port = int(port)

        return cls(
            host=data["host"],
            port=port,
            database=data["dbname"],
            username=data["username"],
            password=data["password"],
            extra={k: v for k, v in data.items() if k not in REQUIRED_FIELDS},
        )

    @classmethod
    def from_secret_string(cls, secret_string: str) -> CredentialRecord:
        """Parse a secret string body."""
        try:
            data = json.loads(secret_string)
        except (TypeError, ValueError) as e:
            raise MalformedCredentialError(f"Secret payload is not valid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass(frozen=True)
class SecretVersion:
    """A single version of a secret as held by the store."""

    secret_id: str
    version_id: str
    stages: tuple[VersionStage, ...]
    record: CredentialRecord

    def has_stage(self, stage: VersionStage) -> bool:
        """Check if this version carries a stage label."""
        return stage in self.stages


@dataclass(frozen=True)
class RotationRequest:
    """
    One invocation of the rotation function.

    Attributes:
        secret_id: Secret being rotated
        token: Candidate version id for the credential created this cycle
        step: Phase to run
    """

    secret_id: str
    token: str
    step: RotationStep

    def to_dict(self) -> dict[str, str]:
        """Convert to an invocation event."""
        return {
            "SecretId": self.secret_id,
            "Token": self.token,
            "Step": self.step.value,
        }

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> RotationRequest:
        """
        Build a request from an invocation event.

        Accepts both ``Token`` and the Secrets Manager spelling
        ``ClientRequestToken``.

        Raises:
            InvalidRequestError: If a field is missing
            InvalidStepError: If Step is not a known phase
        """
        if not isinstance(event, dict):
            raise InvalidRequestError("Rotation event must be an object")

        secret_id = event.get("SecretId")
        token = event.get("Token") or event.get("ClientRequestToken")
        step = event.get("Step")

        for name, value in (("SecretId", secret_id), ("Token", token), ("Step", step)):
            if not isinstance(value, str) or not value:
                raise InvalidRequestError(f"Rotation event is missing '{name}'")

        return cls(secret_id=secret_id, token=token, step=RotationStep.parse(step))
