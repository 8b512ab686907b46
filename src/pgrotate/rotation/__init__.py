"""
Rotation state machine.

- RotationOrchestrator: dispatches a request to one of the four phases
- VersionStageManager: moves the CURRENT label between versions
"""

from pgrotate.rotation.orchestrator import RotationOrchestrator
from pgrotate.rotation.stages import VersionStageManager

__all__ = [
    "RotationOrchestrator",
    "VersionStageManager",
]
