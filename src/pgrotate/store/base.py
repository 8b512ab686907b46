"""
Abstract base class for secret stores.

This module defines the SecretStore interface the rotation phases use
to read, write and relabel secret versions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from pgrotate.exceptions import SecretVersionNotFoundError
from pgrotate.models import CredentialRecord, SecretVersion, VersionStage


class SecretStore(ABC):
    """
    Abstract base class for secret store implementations.

    Versions are immutable once written; only their stage labels move.
    At most one version of a secret carries CURRENT and at most one
    carries PENDING at any time.
    """

    @abstractmethod
    def read_version(
        self,
        secret_id: str,
        stage: VersionStage,
        version_id: str | None = None,
    ) -> SecretVersion:
        """
        Read the version holding a stage.

        Args:
            secret_id: Secret to read
            stage: Stage label the version must carry
            version_id: If given, the version must also have this id

        Returns:
            The matching version

        Raises:
            SecretVersionNotFoundError: If no version matches
        """
        pass

    @abstractmethod
    def write_version(
        self,
        secret_id: str,
        version_id: str,
        record: CredentialRecord,
        stages: Iterable[VersionStage],
    ) -> None:
        """
        Create a new immutable version.

        Writing the same content again under the same version id is a
        no-op. Each stage given is moved off any other version.

        Raises:
            VersionConflictError: If version_id already holds different content
        """
        pass

    @abstractmethod
    def describe_stages(self, secret_id: str) -> dict[str, list[VersionStage]]:
        """
        Map every version id of a secret to its stage labels.

        Raises:
            SecretVersionNotFoundError: If the secret does not exist
        """
        pass

    @abstractmethod
    def rotation_enabled(self, secret_id: str) -> bool:
        """Check whether rotation is enabled on the secret."""
        pass

    @abstractmethod
    def move_stage(
        self,
        secret_id: str,
        stage: VersionStage,
        move_to: str,
        remove_from: str | None,
    ) -> None:
        """
        Move a stage label between versions in one conditional update.

        Moving CURRENT relabels remove_from as PREVIOUS.

        Raises:
            StagePromotionConflictError: If remove_from does not hold stage
        """
        pass

    def version_exists(
        self,
        secret_id: str,
        stage: VersionStage,
        version_id: str,
    ) -> bool:
        """Check whether version_id exists and carries stage."""
        try:
            stages = self.describe_stages(secret_id)
        except SecretVersionNotFoundError:
            return False
        return stage in stages.get(version_id, [])

    def find_stage_holder(self, secret_id: str, stage: VersionStage) -> str | None:
        """Return the id of the version carrying stage, or None."""
        for version_id, stages in self.describe_stages(secret_id).items():
            if stage in stages:
                return version_id
        return None
