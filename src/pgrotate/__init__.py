"""
pgrotate - PostgreSQL credential rotation for AWS Secrets Manager

A rotation function that Secrets Manager invokes once per phase to
replace a database password without downtime:

1. createSecret: store a new PENDING version with a generated password
2. setSecret: apply the new password to the database user
3. testSecret: log in with the new password
4. finishSecret: promote PENDING to CURRENT, keeping the old version as PREVIOUS

Quick Start:
    >>> from pgrotate.store import InMemorySecretStore
    >>> from pgrotate.rotation import RotationOrchestrator
    >>> from pgrotate.models import RotationRequest
    >>>
    >>> orchestrator = RotationOrchestrator(store=InMemorySecretStore())
    >>> orchestrator.handle(RotationRequest.from_event(event))
"""

from __future__ import annotations

__version__ = "0.1.0"

from pgrotate.exceptions import (
    ConfigurationError,
    CredentialVerificationError,
    DatabaseUpdateError,
    InvalidRequestError,
    InvalidStepError,
    MalformedCredentialError,
    RotationError,
    RotationNotEnabledError,
    SecretVersionNotFoundError,
    StagePromotionConflictError,
    TemplateMissingError,
    VersionConflictError,
)
from pgrotate.models import (
    CredentialRecord,
    RotationRequest,
    RotationStep,
    SecretVersion,
    VersionStage,
)
from pgrotate.config import DatabaseSettings, PasswordPolicy, RotationSettings
from pgrotate.store import InMemorySecretStore, SecretStore, SecretsManagerStore, get_store
from pgrotate.passwords import generate_password, validate_password
from pgrotate.database import CredentialVerifier, DatabaseCredentialUpdater
from pgrotate.rotation import RotationOrchestrator, VersionStageManager

__all__ = [
    "__version__",
    # Exceptions
    "ConfigurationError",
    "CredentialVerificationError",
    "DatabaseUpdateError",
    "InvalidRequestError",
    "InvalidStepError",
    "MalformedCredentialError",
    "RotationError",
    "RotationNotEnabledError",
    "SecretVersionNotFoundError",
    "StagePromotionConflictError",
    "TemplateMissingError",
    "VersionConflictError",
    # Models
    "CredentialRecord",
    "RotationRequest",
    "RotationStep",
    "SecretVersion",
    "VersionStage",
    # Config
    "DatabaseSettings",
    "PasswordPolicy",
    "RotationSettings",
    # Store
    "InMemorySecretStore",
    "SecretStore",
    "SecretsManagerStore",
    "get_store",
    # Passwords
    "generate_password",
    "validate_password",
    # Database
    "CredentialVerifier",
    "DatabaseCredentialUpdater",
    # Rotation
    "RotationOrchestrator",
    "VersionStageManager",
]
