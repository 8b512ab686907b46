"""
Configuration management for pgrotate.

Provides settings for password generation, database connections
and rotation behaviour.
"""

from pgrotate.config.settings import (
    ALWAYS_EXCLUDED,
    DatabaseSettings,
    PasswordPolicy,
    RotationSettings,
)

__all__ = [
    "ALWAYS_EXCLUDED",
    "DatabaseSettings",
    "PasswordPolicy",
    "RotationSettings",
]
