"""
Observability for pgrotate.

Provides structured logging for rotation phases.
"""

from pgrotate.observability.logging import (
    HumanReadableFormatter,
    RotationLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "RotationLogger",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
