"""
ImageForge external command layer.

Wraps every external process (ssh, scp, apptainer, chown/chmod) in a
``CommandResult`` so callers branch on an explicit outcome rather than on
raw exit codes.
"""

from __future__ import annotations

import os
import subprocess
import sys
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, TYPE_CHECKING

from imageforge.core.logging import get_logger

if TYPE_CHECKING:
    from imageforge.core.errors import ImageForgeError
    from imageforge.core.models import ArtifactPair, Direction

logger = get_logger(__name__)


class CommandResult:
    """Result of a command execution."""

    def __init__(
        self,
        returncode: int,
        stdout: str,
        stderr: str,
        command: str | list[str],
        duration_seconds: float = 0.0,
    ) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.command = command
        self.duration_seconds = duration_seconds

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def raise_for_status(self, error_type: type[ImageForgeError], message: str) -> CommandResult:
        """Raise ``error_type`` unless the command succeeded."""
        if not self.success:
            raise error_type(
                f"{message} (exit status {self.returncode})",
                {
                    "command": self.command_line,
                    "returncode": self.returncode,
                    "stderr": self.stderr.strip()[:500],
                },
            )
        return self

    @property
    def command_line(self) -> str:
        return self.command if isinstance(self.command, str) else " ".join(self.command)

    def __repr__(self) -> str:
        return f"CommandResult(rc={self.returncode}, cmd='{self.command_line[:50]}...')"


class CommandRunner:
    """Runs local commands synchronously, without timeouts."""

    def run(
        self,
        command: list[str],
        capture_output: bool = True,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run a command and wait for it to finish."""
        logger.debug("Running command", command=command)
        start_time = time.time()

        try:
            result = subprocess.run(
                command,
                capture_output=capture_output,
                text=True,
                cwd=cwd,
                env=self._merge_env(env),
            )
        except OSError as e:
            return CommandResult(
                returncode=-1,
                stdout="",
                stderr=str(e),
                command=command,
                duration_seconds=time.time() - start_time,
            )

        cmd_result = CommandResult(
            returncode=result.returncode,
            stdout=result.stdout if capture_output else "",
            stderr=result.stderr if capture_output else "",
            command=command,
            duration_seconds=time.time() - start_time,
        )
        if not cmd_result.success:
            logger.debug(
                "Command failed",
                command=command,
                returncode=result.returncode,
                stderr=cmd_result.stderr[:500],
            )
        return cmd_result

    def stream(
        self,
        command: list[str],
        log_file: Path,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        echo: IO[str] | None = None,
    ) -> CommandResult:
        """Run a command, teeing combined stdout/stderr to ``log_file``."""
        logger.debug("Streaming command", command=command, log_file=str(log_file))
        echo = echo or sys.stdout
        start_time = time.time()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        with open(log_file, "w", encoding="utf-8") as log:
            try:
                proc = subprocess.Popen(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    cwd=cwd,
                    env=self._merge_env(env),
                )
            except OSError as e:
                log.write(f"{e}\n")
                return CommandResult(-1, "", str(e), command, time.time() - start_time)

            for line in proc.stdout or ():
                log.write(line)
                echo.write(line)
            returncode = proc.wait()

        return CommandResult(
            returncode=returncode,
            stdout="",
            stderr="",
            command=command,
            duration_seconds=time.time() - start_time,
        )

    @staticmethod
    def _merge_env(env: dict[str, str] | None) -> dict[str, str] | None:
        if env is None:
            return None
        merged = os.environ.copy()
        merged.update(env)
        return merged


class RemoteHost(ABC):
    """Remote-execution and remote-copy capabilities for one host."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable host identifier."""

    @abstractmethod
    def execute(self, command: list[str]) -> CommandResult:
        """Run ``command`` on the host and return its outcome."""

    @abstractmethod
    def copy(self, source: str, destination: str, direction: Direction) -> CommandResult:
        """Copy one file; ``source`` is remote for downloads, local for uploads."""


class ArtifactStore(ABC):
    """Read access and permission fixing for the artifact pair at one location."""

    @property
    @abstractmethod
    def pair(self) -> ArtifactPair:
        """Image and metadata paths at this location."""

    @abstractmethod
    def exists(self, path: Path | str) -> bool:
        """Whether a regular file exists at ``path``."""

    @abstractmethod
    def read_text(self, path: Path | str) -> str:
        """Return the contents of a small text file."""

    @abstractmethod
    def apply_permissions(self) -> None:
        """Set the deterministic ownership and mode bits on both pair members."""
