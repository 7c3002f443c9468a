"""
Rotation of the local artifact pair before a build overwrites its slot.
"""

from __future__ import annotations

from pathlib import Path

from imageforge.core.logging import get_logger
from imageforge.core.models import ArtifactPair
from imageforge.platform.file_ops import move_path, remove_paths

logger = get_logger(__name__)


class BackupManager:
    """Deletes the pair, or renames it to the single backup generation."""

    def __init__(self, backup_suffix: str = ".bak") -> None:
        self.backup_suffix = backup_suffix

    def backup_pair(self, pair: ArtifactPair) -> ArtifactPair:
        return pair.with_suffix(self.backup_suffix)

    def rotate(self, pair: ArtifactPair, keep_backup: bool) -> None:
        members = [Path(pair.image), Path(pair.metadata)]

        if not keep_backup:
            removed = remove_paths(members)
            logger.info("Removed old image", removed=removed)
            return

        backup = self.backup_pair(pair)
        backups = [Path(backup.image), Path(backup.metadata)]

        # Only one generation is kept; a corrupt pair must not inherit a stale partner.
        discarded = remove_paths(backups)
        if discarded:
            logger.warning("Discarding previous backup", discarded=discarded)

        for member, target in zip(members, backups):
            if member.exists():
                move_path(member, target)
        logger.info("Created backup of old image", image=str(backup.image))
