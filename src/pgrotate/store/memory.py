"""
In-memory secret store.

This module provides InMemorySecretStore, a process-local store with
the same version and stage semantics as Secrets Manager. It backs the
test suite and CLI dry runs.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Iterable

from pgrotate.exceptions import (
    SecretVersionNotFoundError,
    StagePromotionConflictError,
    VersionConflictError,
)
from pgrotate.models import CredentialRecord, SecretVersion, VersionStage
from pgrotate.store.base import SecretStore


@dataclass
class _StoredSecret:
    rotation_enabled: bool = True
    payloads: dict[str, str] = field(default_factory=dict)
    stages: dict[str, list[VersionStage]] = field(default_factory=dict)


class InMemorySecretStore(SecretStore):
    """
    Thread-safe in-process secret store.

    All operations take a single lock, so every call is atomic with
    respect to the others, as the Secrets Manager API calls are.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._secrets: dict[str, _StoredSecret] = {}

    def create_secret(
        self,
        secret_id: str,
        record: CredentialRecord,
        version_id: str | None = None,
        rotation_enabled: bool = True,
    ) -> str:
        """
        Create a secret whose first version holds CURRENT.

        Returns:
            The id of the initial version
        """
        version_id = version_id or str(uuid.uuid4())
        with self._lock:
            if secret_id in self._secrets:
                raise VersionConflictError(f"Secret {secret_id} already exists")
            self._secrets[secret_id] = _StoredSecret(
                rotation_enabled=rotation_enabled,
                payloads={version_id: record.to_secret_string()},
                stages={version_id: [VersionStage.CURRENT]},
            )
        return version_id

    def _get(self, secret_id: str) -> _StoredSecret:
        secret = self._secrets.get(secret_id)
        if secret is None:
            raise SecretVersionNotFoundError(secret_id, VersionStage.CURRENT.value)
        return secret

    def read_version(
        self,
        secret_id: str,
        stage: VersionStage,
        version_id: str | None = None,
    ) -> SecretVersion:
        with self._lock:
            secret = self._secrets.get(secret_id)
            if secret is not None:
                for vid, stages in secret.stages.items():
                    if stage in stages and (version_id is None or vid == version_id):
                        return SecretVersion(
                            secret_id=secret_id,
                            version_id=vid,
                            stages=tuple(stages),
                            record=CredentialRecord.from_secret_string(secret.payloads[vid]),
                        )
        raise SecretVersionNotFoundError(secret_id, stage.value, version_id)

    def write_version(
        self,
        secret_id: str,
        version_id: str,
        record: CredentialRecord,
        stages: Iterable[VersionStage],
    ) -> None:
        payload = record.to_secret_string()
        stages = list(stages)
        with self._lock:
            secret = self._get(secret_id)
            existing = secret.payloads.get(version_id)
            if existing is not None:
                if existing != payload:
                    raise VersionConflictError(
                        f"Version {version_id} of secret {secret_id} already exists "
                        "with different content"
                    )
                return

            for stage in stages:
                for other in secret.stages.values():
                    if stage in other:
                        other.remove(stage)
            secret.payloads[version_id] = payload
            secret.stages[version_id] = stages

    def describe_stages(self, secret_id: str) -> dict[str, list[VersionStage]]:
        with self._lock:
            secret = self._get(secret_id)
            return {vid: list(stages) for vid, stages in secret.stages.items()}

    def rotation_enabled(self, secret_id: str) -> bool:
        with self._lock:
            return self._get(secret_id).rotation_enabled

    def move_stage(
        self,
        secret_id: str,
        stage: VersionStage,
        move_to: str,
        remove_from: str | None,
    ) -> None:
        with self._lock:
            secret = self._get(secret_id)
            if move_to not in secret.stages:
                raise SecretVersionNotFoundError(secret_id, stage.value, move_to)

            holder = next(
                (vid for vid, stages in secret.stages.items() if stage in stages),
                None,
            )
            if holder != remove_from:
                raise StagePromotionConflictError(
                    f"{stage.value} of secret {secret_id} is on version {holder}, "
                    f"not {remove_from}"
                )
            if holder == move_to:
                return

            if holder is not None:
                secret.stages[holder].remove(stage)
            secret.stages[move_to].append(stage)

            if stage is VersionStage.CURRENT and holder is not None:
                for stages in secret.stages.values():
                    if VersionStage.PREVIOUS in stages:
                        stages.remove(VersionStage.PREVIOUS)
                secret.stages[holder].append(VersionStage.PREVIOUS)

    def version_ids(self, secret_id: str) -> list[str]:
        """List every version id of a secret, including unlabeled ones."""
        with self._lock:
            return list(self._get(secret_id).payloads)
