"""
ImageForge - Build, synchronize and launch a shared Apptainer image.

Manages a single container image artifact (image plus metadata record)
that lives both on a workstation and on a remote build/storage host.
"""

__version__ = "1.0.0"
__author__ = "ImageForge Team"

from imageforge.core.config import ImageForgeConfig
from imageforge.core.session import Session

__all__ = ["ImageForgeConfig", "Session", "__version__"]
