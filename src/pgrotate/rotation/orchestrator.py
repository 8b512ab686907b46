"""
Rotation orchestrator.

Sequences the four rotation phases for one secret:

1. createSecret: generate a new password and store it as PENDING
2. setSecret: apply the pending password to the database user
3. testSecret: log in with the pending credentials
4. finishSecret: promote PENDING to CURRENT

The orchestrator holds no state between invocations. Each phase reads
what it needs from the secret store and the database, and is safe to
re-run after a partial failure or a duplicate delivery. Errors from
collaborators are never recovered locally; they propagate to the
invoking platform, which owns retries.
"""

from __future__ import annotations

import time
from typing import Callable

from pgrotate.config import PasswordPolicy, RotationSettings
from pgrotate.database import CredentialVerifier, DatabaseCredentialUpdater
from pgrotate.exceptions import (
    DatabaseUpdateError,
    InvalidRequestError,
    InvalidStepError,
    RotationNotEnabledError,
    SecretVersionNotFoundError,
    TemplateMissingError,
    VersionConflictError,
)
from pgrotate.models import RotationRequest, RotationStep, VersionStage
from pgrotate.observability import get_logger
from pgrotate.passwords import generate_password
from pgrotate.rotation.stages import VersionStageManager
from pgrotate.store.base import SecretStore

PasswordGenerator = Callable[[PasswordPolicy], str]


class RotationOrchestrator:
    """
    Dispatches rotation requests to phase handlers.

    All collaborators are injected so tests can substitute them.

    Attributes:
        store: Secret store holding the versions
        updater: Applies passwords to the database
        verifier: Checks credentials against the database
        stages: Stage label manager
        settings: Rotation settings
    """

    def __init__(
        self,
        store: SecretStore,
        updater: DatabaseCredentialUpdater | None = None,
        verifier: CredentialVerifier | None = None,
        settings: RotationSettings | None = None,
        password_generator: PasswordGenerator | None = None,
    ):
        self.settings = settings or RotationSettings()
        self.store = store
        self.updater = updater or DatabaseCredentialUpdater(self.settings.database)
        self.verifier = verifier or CredentialVerifier(self.settings.database)
        self.stages = VersionStageManager(store)
        self._generate_password = password_generator or generate_password
        self._log = get_logger("rotation")
        self._handlers: dict[RotationStep, Callable[[RotationRequest], None]] = {
            RotationStep.CREATE_SECRET: self.create_secret,
            RotationStep.SET_SECRET: self.set_secret,
            RotationStep.TEST_SECRET: self.test_secret,
            RotationStep.FINISH_SECRET: self.finish_secret,
        }

    def handle(self, request: RotationRequest) -> None:
        """
        Run one rotation phase.

        Args:
            request: Secret id, token and step to run

        Raises:
            InvalidStepError: If the step has no handler
            RotationError: Any phase failure, unchanged
        """
        step = getattr(request.step, "value", str(request.step))
        started = time.monotonic()
        self._log.phase_started(request.secret_id, request.token, step)

        try:
            handler = self._handlers.get(request.step)
            if handler is None:
                raise InvalidStepError(step)
            if self._check_token(request):
                handler(request)
        except Exception as e:
            self._log.phase_failed(
                request.secret_id,
                request.token,
                step,
                e,
                time.monotonic() - started,
            )
            raise

        self._log.phase_completed(
            request.secret_id,
            request.token,
            step,
            time.monotonic() - started,
        )

    def _check_token(self, request: RotationRequest) -> bool:
        """
        Validate the token's version before running a phase.

        Returns:
            False if the token is already CURRENT and the phase has
            nothing to do, True otherwise
        """
        secret_id, token = request.secret_id, request.token

        if self.settings.require_rotation_enabled and not self.store.rotation_enabled(
            secret_id
        ):
            raise RotationNotEnabledError(f"Secret {secret_id} is not enabled for rotation")

        stages = self.store.describe_stages(secret_id).get(token)
        if stages is None:
            if request.step is RotationStep.CREATE_SECRET:
                return True
            raise SecretVersionNotFoundError(secret_id, VersionStage.PENDING.value, token)

        if VersionStage.CURRENT in stages:
            self._log.info(
                f"{request.step.value}: version {token} is already CURRENT, nothing to do",
                secret_id=secret_id,
                token=token,
            )
            return False

        if VersionStage.PENDING not in stages:
            raise InvalidRequestError(
                f"Version {token} of secret {secret_id} is not PENDING for rotation"
            )
        return True

    def create_secret(self, request: RotationRequest) -> None:
        """Store a new PENDING version with a fresh password."""
        secret_id, token = request.secret_id, request.token

        try:
            current = self.store.read_version(secret_id, VersionStage.CURRENT)
        except SecretVersionNotFoundError as e:
            raise TemplateMissingError(secret_id, VersionStage.CURRENT.value) from e

        if self.store.version_exists(secret_id, VersionStage.PENDING, token):
            self._log.info(
                "createSecret: PENDING version already exists, leaving it unchanged",
                secret_id=secret_id,
                token=token,
            )
            return

        password = self._generate_password(self.settings.password)
        try:
            self.store.write_version(
                secret_id,
                token,
                current.record.with_password(password),
                [VersionStage.PENDING],
            )
        except VersionConflictError:
            # A duplicate delivery wrote its own password first
            if self.store.version_exists(secret_id, VersionStage.PENDING, token):
                self._log.info(
                    "createSecret: PENDING version was created concurrently",
                    secret_id=secret_id,
                    token=token,
                )
                return
            raise

        self._log.info(
            "createSecret: created PENDING version",
            secret_id=secret_id,
            token=token,
            template_version=current.version_id,
        )

    def set_secret(self, request: RotationRequest) -> None:
        """Apply the PENDING password to the database user."""
        secret_id, token = request.secret_id, request.token

        current = self.store.read_version(secret_id, VersionStage.CURRENT)
        pending = self.store.read_version(secret_id, VersionStage.PENDING, token)

        if (pending.record.host, pending.record.port) != (
            current.record.host,
            current.record.port,
        ):
            raise InvalidRequestError(
                f"PENDING version {token} targets {pending.record.host}:"
                f"{pending.record.port}, not the current host "
                f"{current.record.host}:{current.record.port}"
            )

        if self.verifier.can_authenticate(pending.record):
            self._log.info(
                "setSecret: PENDING password is already active in the database",
                secret_id=secret_id,
                token=token,
            )
            return

        try:
            self.updater.apply(current.record, pending.record)
        except DatabaseUpdateError:
            # A duplicate delivery may have applied the password first
            if self.verifier.can_authenticate(pending.record):
                self._log.info(
                    "setSecret: PENDING password was applied concurrently",
                    secret_id=secret_id,
                    token=token,
                )
                return
            raise

    def test_secret(self, request: RotationRequest) -> None:
        """Log in with the PENDING credentials."""
        pending = self.store.read_version(
            request.secret_id, VersionStage.PENDING, request.token
        )
        self.verifier.verify(pending.record)

    def finish_secret(self, request: RotationRequest) -> None:
        """Promote the PENDING version to CURRENT."""
        secret_id, token = request.secret_id, request.token

        if self.stages.is_current(secret_id, token):
            return

        if self.settings.verify_before_finish:
            pending = self.store.read_version(secret_id, VersionStage.PENDING, token)
            self.verifier.verify(pending.record)

        self.stages.promote(secret_id, token)
