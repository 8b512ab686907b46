"""
Version stage management.

Moves the CURRENT label from the live version to the newly rotated one.
The move is a single conditional store update, so there is never a
moment with zero or two CURRENT versions.
"""

from __future__ import annotations

import logging

from pgrotate.exceptions import SecretVersionNotFoundError, StagePromotionConflictError
from pgrotate.models import VersionStage
from pgrotate.store.base import SecretStore

logger = logging.getLogger(__name__)


class VersionStageManager:
    """Promotes secret versions between stages."""

    def __init__(self, store: SecretStore):
        self.store = store

    def current_version_id(self, secret_id: str) -> str | None:
        """Get the id of the version holding CURRENT."""
        return self.store.find_stage_holder(secret_id, VersionStage.CURRENT)

    def is_current(self, secret_id: str, version_id: str) -> bool:
        """Check whether a version holds CURRENT."""
        return self.current_version_id(secret_id) == version_id

    def promote(self, secret_id: str, version_id: str) -> bool:
        """
        Make version_id CURRENT and demote the old CURRENT to PREVIOUS.

        Args:
            secret_id: Secret being rotated
            version_id: Version to promote

        Returns:
            True if the labels moved, False if version_id was already CURRENT

        Raises:
            SecretVersionNotFoundError: If no version holds CURRENT
            StagePromotionConflictError: If CURRENT moved to another version
                while promoting
        """
        current = self.current_version_id(secret_id)
        if current is None:
            raise SecretVersionNotFoundError(secret_id, VersionStage.CURRENT.value)
        if current == version_id:
            logger.info("Version %s of secret %s is already CURRENT", version_id, secret_id)
            return False

        try:
            self.store.move_stage(
                secret_id,
                VersionStage.CURRENT,
                move_to=version_id,
                remove_from=current,
            )
        except StagePromotionConflictError:
            # A duplicate delivery of this phase may have won the race
            if self.is_current(secret_id, version_id):
                logger.info(
                    "Version %s of secret %s was promoted concurrently",
                    version_id,
                    secret_id,
                )
                return False
            raise

        logger.info(
            "Promoted version %s of secret %s to CURRENT (previous: %s)",
            version_id,
            secret_id,
            current,
        )
        return True
