"""
Exceptions raised during a credential rotation.

Every error a phase can produce derives from RotationError so the
invoking platform (and the CLI) can tell rotation failures apart from
programming errors. None of these are caught inside a phase: they are
raised to the caller, which owns retry scheduling.
"""

from __future__ import annotations


class RotationError(Exception):
    """Base exception for rotation errors."""

    pass


class ConfigurationError(RotationError):
    """Raised when rotation settings are invalid."""

    pass


class InvalidRequestError(RotationError):
    """Raised when a rotation request is malformed or names the wrong version."""

    pass


class InvalidStepError(InvalidRequestError):
    """Raised when the requested step is not one of the four rotation phases."""

    def __init__(self, step: str):
        super().__init__(f"Invalid rotation step: {step}")
        self.step = step


class RotationNotEnabledError(RotationError):
    """Raised when the secret does not have rotation enabled."""

    pass


class SecretVersionNotFoundError(RotationError):
    """Raised when no version matches the requested stage or version id."""

    def __init__(self, secret_id: str, stage: str, version_id: str | None = None):
        target = f"{stage} version {version_id}" if version_id else f"{stage} version"
        super().__init__(f"No {target} found for secret {secret_id}")
        self.secret_id = secret_id
        self.stage = stage
        self.version_id = version_id


class TemplateMissingError(SecretVersionNotFoundError):
    """Raised when createSecret finds no current version to copy from."""

    pass


class MalformedCredentialError(RotationError):
    """Raised when a secret payload is not a valid credential record."""

    pass


class VersionConflictError(RotationError):
    """Raised when a version id is reused with different content."""

    pass


class StagePromotionConflictError(RotationError):
    """Raised when a stage label moved underneath a promotion."""

    pass


class DatabaseUpdateError(RotationError):
    """Raised when the new password could not be applied to the database."""

    pass


class CredentialVerificationError(RotationError):
    """Raised when the pending credentials fail to log in or answer a liveness check."""

    pass
