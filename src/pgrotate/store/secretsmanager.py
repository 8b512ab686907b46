"""
AWS Secrets Manager secret store.

This module provides SecretsManagerStore, the production SecretStore
backed by the Secrets Manager API through boto3.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

try:
    import boto3
    from botocore.exceptions import ClientError

    BOTO3_AVAILABLE = True
except ImportError:
    BOTO3_AVAILABLE = False

from pgrotate.exceptions import (
    SecretVersionNotFoundError,
    StagePromotionConflictError,
    VersionConflictError,
)
from pgrotate.models import CredentialRecord, SecretVersion, VersionStage
from pgrotate.store.base import SecretStore

logger = logging.getLogger(__name__)

# Custom staging labels attached by other tooling are ignored
_KNOWN_STAGES = frozenset(stage.value for stage in VersionStage)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class SecretsManagerStore(SecretStore):
    """
    Secrets Manager backed secret store.

    Attributes:
        region: AWS region, or None for the default chain
        endpoint_url: Optional endpoint override (VPC endpoint, localstack)
    """

    def __init__(
        self,
        client: Any = None,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """
        Initialize the Secrets Manager store.

        Args:
            client: Pre-built secretsmanager client. Created on first use
                when omitted.
            region: AWS region for the created client
            endpoint_url: Endpoint override for the created client

        Raises:
            ImportError: If boto3 is not installed
        """
        if not BOTO3_AVAILABLE:
            raise ImportError(
                "boto3 is required for SecretsManagerStore. Install with: pip install boto3"
            )

        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the secretsmanager client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.region:
                kwargs["region_name"] = self.region
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            self._client = boto3.client("secretsmanager", **kwargs)
        return self._client

    def _raise_access_denied(self, e: ClientError, action: str, secret_id: str) -> None:
        if _error_code(e) == "AccessDeniedException":
            raise PermissionError(f"Access denied when {action} secret {secret_id}") from e

    def read_version(
        self,
        secret_id: str,
        stage: VersionStage,
        version_id: str | None = None,
    ) -> SecretVersion:
        params: dict[str, Any] = {"SecretId": secret_id, "VersionStage": stage.value}
        if version_id:
            params["VersionId"] = version_id

        try:
            response = self._get_client().get_secret_value(**params)
        except ClientError as e:
            if _error_code(e) == "ResourceNotFoundException":
                raise SecretVersionNotFoundError(secret_id, stage.value, version_id) from e
            self._raise_access_denied(e, "reading", secret_id)
            raise

        stages = tuple(
            VersionStage(s)
            for s in response.get("VersionStages", [stage.value])
            if s in _KNOWN_STAGES
        )
        return SecretVersion(
            secret_id=secret_id,
            version_id=response["VersionId"],
            stages=stages,
            record=CredentialRecord.from_secret_string(response["SecretString"]),
        )

    def write_version(
        self,
        secret_id: str,
        version_id: str,
        record: CredentialRecord,
        stages: Iterable[VersionStage],
    ) -> None:
        try:
            self._get_client().put_secret_value(
                SecretId=secret_id,
                ClientRequestToken=version_id,
                SecretString=record.to_secret_string(),
                VersionStages=[stage.value for stage in stages],
            )
        except ClientError as e:
            if _error_code(e) == "ResourceExistsException":
                raise VersionConflictError(
                    f"Version {version_id} of secret {secret_id} already exists "
                    "with different content"
                ) from e
            if _error_code(e) == "ResourceNotFoundException":
                raise SecretVersionNotFoundError(secret_id, VersionStage.CURRENT.value) from e
            self._raise_access_denied(e, "writing", secret_id)
            raise
        logger.debug("Wrote version %s of secret %s", version_id, secret_id)

    def _describe(self, secret_id: str) -> dict[str, Any]:
        try:
            return self._get_client().describe_secret(SecretId=secret_id)
        except ClientError as e:
            if _error_code(e) == "ResourceNotFoundException":
                raise SecretVersionNotFoundError(secret_id, VersionStage.CURRENT.value) from e
            self._raise_access_denied(e, "describing", secret_id)
            raise

    def describe_stages(self, secret_id: str) -> dict[str, list[VersionStage]]:
        versions = self._describe(secret_id).get("VersionIdsToStages", {})
        return {
            version_id: [VersionStage(s) for s in stages if s in _KNOWN_STAGES]
            for version_id, stages in versions.items()
        }

    def rotation_enabled(self, secret_id: str) -> bool:
        return bool(self._describe(secret_id).get("RotationEnabled"))

    def move_stage(
        self,
        secret_id: str,
        stage: VersionStage,
        move_to: str,
        remove_from: str | None,
    ) -> None:
        params: dict[str, Any] = {
            "SecretId": secret_id,
            "VersionStage": stage.value,
            "MoveToVersionId": move_to,
        }
        if remove_from is not None:
            params["RemoveFromVersionId"] = remove_from

        try:
            self._get_client().update_secret_version_stage(**params)
        except ClientError as e:
            if _error_code(e) in ("InvalidParameterException", "InvalidRequestException"):
                raise StagePromotionConflictError(
                    f"Could not move {stage.value} of secret {secret_id} "
                    f"from {remove_from} to {move_to}: {e}"
                ) from e
            if _error_code(e) == "ResourceNotFoundException":
                raise SecretVersionNotFoundError(secret_id, stage.value, move_to) from e
            self._raise_access_denied(e, "relabeling", secret_id)
            raise
