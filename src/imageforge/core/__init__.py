"""
ImageForge Core - Configuration, models, errors and session wiring.
"""

from imageforge.core.config import HardwareType, ImageForgeConfig
from imageforge.core.errors import ImageForgeError, OperatorAbortedError
from imageforge.core.logging import get_logger, setup_logging
from imageforge.core.models import (
    ArtifactPair,
    ConsistencyState,
    Direction,
    ImageMetadata,
    Location,
)
from imageforge.core.safety import (
    Confirmation,
    InteractiveConfirmation,
    StaticConfirmation,
)
from imageforge.core.session import Session

__all__ = [
    "ArtifactPair",
    "Confirmation",
    "ConsistencyState",
    "Direction",
    "HardwareType",
    "ImageForgeConfig",
    "ImageForgeError",
    "ImageMetadata",
    "InteractiveConfirmation",
    "Location",
    "OperatorAbortedError",
    "Session",
    "StaticConfirmation",
    "get_logger",
    "setup_logging",
]
