"""
Local artifact store: existence checks, removal, rotation and permissions.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Iterable

from imageforge.core.config import ArtifactConfig
from imageforge.core.errors import ArtifactStoreError
from imageforge.core.logging import get_logger
from imageforge.core.models import ArtifactPair, Location
from imageforge.platform.base import ArtifactStore, CommandRunner

logger = get_logger(__name__)


def remove_paths(paths: Iterable[Path]) -> list[str]:
    """Delete every existing file in ``paths``; return what was removed."""
    removed: list[str] = []
    for path in paths:
        if not path.exists() and not path.is_symlink():
            continue
        try:
            path.unlink()
        except OSError as exc:
            raise ArtifactStoreError(f"Failed to remove {path}: {exc}", {"path": str(path)}) from exc
        removed.append(str(path))
    return removed


def move_path(source: Path, destination: Path) -> None:
    """Rename ``source`` to ``destination``, replacing any existing file."""
    try:
        os.replace(source, destination)
    except OSError as exc:
        raise ArtifactStoreError(
            f"Failed to move {source} to {destination}: {exc}",
            {"source": str(source), "destination": str(destination)},
        ) from exc


class LocalArtifactStore(ArtifactStore):
    """Artifact pair on the workstation filesystem.

    With ``privileged`` set, ownership and mode changes go through ``sudo``
    because a privileged build leaves root-owned files behind.
    """

    def __init__(
        self,
        config: ArtifactConfig,
        runner: CommandRunner | None = None,
        privileged: bool = False,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner()
        self.privileged = privileged
        self._pair = ArtifactPair(Location.LOCAL, config.image_file, config.metadata_file)

    @property
    def pair(self) -> ArtifactPair:
        return self._pair

    def exists(self, path: Path | str) -> bool:
        return Path(path).is_file()

    def read_text(self, path: Path | str) -> str:
        return Path(path).read_text(encoding="utf-8")

    def apply_permissions(self) -> None:
        targets = [
            (Path(self.pair.image), self.config.image_mode),
            (Path(self.pair.metadata), self.config.metadata_mode),
        ]
        owner = self.config.owner
        if self.privileged:
            owner = owner or os.environ.get("SUDO_USER") or os.environ.get("USER")
            for path, mode in targets:
                if owner:
                    self.runner.run(["sudo", "chown", f"{owner}:{owner}", str(path)]).raise_for_status(
                        ArtifactStoreError, f"Failed to change owner of {path}"
                    )
                self.runner.run(["sudo", "chmod", format(mode, "o"), str(path)]).raise_for_status(
                    ArtifactStoreError, f"Failed to change mode of {path}"
                )
        else:
            for path, mode in targets:
                try:
                    if owner:
                        shutil.chown(path, owner, owner)
                    path.chmod(mode)
                except (OSError, LookupError) as exc:
                    raise ArtifactStoreError(
                        f"Failed to set permissions on {path}: {exc}", {"path": str(path)}
                    ) from exc
        logger.debug("Permissions applied", image=str(self.pair.image), owner=owner)
