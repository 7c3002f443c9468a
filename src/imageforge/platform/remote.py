"""
SSH/SCP implementation of the remote host capabilities.
"""

from __future__ import annotations

import shlex
from pathlib import Path

from imageforge.core.config import ImageForgeConfig, RemoteConfig
from imageforge.core.errors import RemoteCommandError
from imageforge.core.logging import get_logger
from imageforge.core.models import ArtifactPair, Direction, Location
from imageforge.platform.base import ArtifactStore, CommandResult, CommandRunner, RemoteHost

logger = get_logger(__name__)


class SshRemoteHost(RemoteHost):
    """Remote host reached with the system ``ssh`` and ``scp`` clients."""

    def __init__(
        self,
        config: RemoteConfig,
        runner: CommandRunner | None = None,
        username: str | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner()
        self.destination = config.destination(username)

    @property
    def name(self) -> str:
        return self.destination

    def execute(self, command: list[str]) -> CommandResult:
        ssh = [self.config.ssh_executable, *self.config.ssh_options, self.destination]
        return self.runner.run([*ssh, "--", shlex.join(command)])

    def copy(self, source: str, destination: str, direction: Direction) -> CommandResult:
        if direction is Direction.UPLOAD:
            src, dst = source, f"{self.destination}:{destination}"
        else:
            src, dst = f"{self.destination}:{source}", destination
        logger.info("Copying file", source=src, destination=dst)
        # Progress meter goes straight to the terminal
        return self.runner.run(
            [self.config.scp_executable, *self.config.scp_options, src, dst],
            capture_output=False,
        )


class RemoteArtifactStore(ArtifactStore):
    """Artifact pair on the remote host, inspected through ``RemoteHost.execute``."""

    def __init__(self, host: RemoteHost, config: ImageForgeConfig) -> None:
        self.host = host
        self.config = config
        self._pair = ArtifactPair(
            Location.REMOTE, config.remote_image_file, config.remote_metadata_file
        )

    @property
    def pair(self) -> ArtifactPair:
        return self._pair

    def exists(self, path: Path | str) -> bool:
        result = self.host.execute(["test", "-f", str(path)])
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise RemoteCommandError(
            f"Could not check {path} on {self.host.name} (exit status {result.returncode})",
            {"path": str(path), "stderr": result.stderr.strip()[:500]},
        )

    def read_text(self, path: Path | str) -> str:
        result = self.host.execute(["cat", str(path)])
        result.raise_for_status(RemoteCommandError, f"Could not read {path} on {self.host.name}")
        return result.stdout

    def apply_permissions(self) -> None:
        for path, mode in (
            (self.pair.image, self.config.artifacts.image_mode),
            (self.pair.metadata, self.config.artifacts.metadata_mode),
        ):
            self.host.execute(["chmod", format(mode, "o"), str(path)]).raise_for_status(
                RemoteCommandError, f"Failed to change mode of {path} on {self.host.name}"
            )
