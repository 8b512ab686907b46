"""
Secrets Manager rotation function entry point.

Configure the Lambda handler as ``pgrotate.lambda_function.lambda_handler``.
Secrets Manager invokes it once per phase with an event of the form::

    {
        "SecretId": "arn:aws:secretsmanager:...:secret:app-db-AbCdEf",
        "ClientRequestToken": "8f1c2f0e-...",
        "Step": "createSecret"
    }

Nothing is cached between invocations: each one builds its own store
and database clients from the environment.
"""

from __future__ import annotations

from typing import Any

from pgrotate.config import RotationSettings
from pgrotate.database import CredentialVerifier, DatabaseCredentialUpdater
from pgrotate.exceptions import RotationError
from pgrotate.models import RotationRequest
from pgrotate.observability import get_logger
from pgrotate.rotation import RotationOrchestrator
from pgrotate.store import SecretStore, SecretsManagerStore

logger = get_logger("lambda")


def build_orchestrator(
    settings: RotationSettings | None = None,
    store: SecretStore | None = None,
) -> RotationOrchestrator:
    """
    Build an orchestrator with production collaborators.

    Args:
        settings: Rotation settings, read from the environment when omitted
        store: Secret store, a SecretsManagerStore when omitted

    Returns:
        Ready-to-use RotationOrchestrator
    """
    settings = settings or RotationSettings.from_env()
    if store is None:
        store = SecretsManagerStore(region=settings.region, endpoint_url=settings.endpoint_url)
    return RotationOrchestrator(
        store=store,
        updater=DatabaseCredentialUpdater(settings.database),
        verifier=CredentialVerifier(settings.database),
        settings=settings,
    )


def lambda_handler(event: dict[str, Any], context: Any) -> None:
    """
    Handle one Secrets Manager rotation step.

    Raises:
        RotationError: When the step fails; Secrets Manager retries it
    """
    request_id = getattr(context, "aws_request_id", None)

    try:
        request = RotationRequest.from_event(event)
    except RotationError as e:
        logger.error(
            f"Rejected rotation event: {e}",
            event_type="rotation.request.rejected",
            error_type=type(e).__name__,
            request_id=request_id,
            step=event.get("Step") if isinstance(event, dict) else None,
        )
        raise

    logger.info(
        f"Rotation event received: {request.step.value}",
        event_type="rotation.request.received",
        request_id=request_id,
        secret_id=request.secret_id,
        token=request.token,
        step=request.step.value,
    )
    try:
        orchestrator = build_orchestrator()
    except Exception as e:
        logger.error(
            f"Could not set up rotation: {e}",
            event_type="rotation.setup.failed",
            error_type=type(e).__name__,
            request_id=request_id,
            secret_id=request.secret_id,
            step=request.step.value,
        )
        raise

    orchestrator.handle(request)
