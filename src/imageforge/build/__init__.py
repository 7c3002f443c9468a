"""
ImageForge build module.

Rotates the existing artifact pair and builds a fresh image with metadata.
"""

from imageforge.build.backup import BackupManager
from imageforge.build.pipeline import BuildPipeline, BuildStatus, resolve_identity

__all__ = ["BackupManager", "BuildPipeline", "BuildStatus", "resolve_identity"]
