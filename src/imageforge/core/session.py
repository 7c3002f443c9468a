"""
ImageForge Session.

Constructs every component from one configuration object and exposes the
three top-level operations: build, transfer and start.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imageforge.core.config import ImageForgeConfig, load_config
from imageforge.core.errors import DependencyMissingError, ImageForgeError
from imageforge.core.logging import get_logger, setup_logging
from imageforge.core.models import ConsistencyState, Direction, ImageMetadata, Location
from imageforge.core.safety import (
    Confirmation,
    InteractiveConfirmation,
    PreflightChecker,
    StaticConfirmation,
    check_tools_installed,
)
from imageforge.build.pipeline import BuildPipeline, BuildStatus
from imageforge.container.launcher import ContainerLauncher
from imageforge.platform.base import ArtifactStore, CommandRunner, RemoteHost
from imageforge.platform.file_ops import LocalArtifactStore
from imageforge.platform.remote import RemoteArtifactStore, SshRemoteHost
from imageforge.sync.consistency import ConsistencyChecker
from imageforge.sync.manager import SyncManager, SyncStatus
from imageforge.sync.timestamps import TimestampComparator

logger = get_logger(__name__)


@dataclass
class LocationReport:
    """What ``status`` shows for one side."""

    location: Location
    image: str
    state: ConsistencyState
    metadata: ImageMetadata | None = None
    size_bytes: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location.value,
            "image": self.image,
            "state": self.state.name,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "size_bytes": self.size_bytes,
            "error": self.error,
        }


class Session:
    """
    Wires configuration, confirmation, command runner and remote host into
    the sync engine, the build pipeline and the container launcher.
    """

    def __init__(
        self,
        config: ImageForgeConfig | None = None,
        confirmation: Confirmation | None = None,
        username: str | None = None,
        runner: CommandRunner | None = None,
        host: RemoteHost | None = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.config = config or load_config()
        self.started_at = datetime.now()

        setup_logging(self.config.logging)

        if confirmation is None:
            if self.config.safety.require_confirmation:
                confirmation = InteractiveConfirmation()
            else:
                confirmation = StaticConfirmation(True)
        self.confirmation = confirmation
        self.username = username
        self.runner = runner or CommandRunner()

        # Remote host (lazily created so local-only commands need no ssh)
        self._host = host

        logger.info(
            "Session started",
            session_id=self.id,
            hardware=self.config.hardware.value,
        )

    @property
    def host(self) -> RemoteHost:
        if self._host is None:
            checker = PreflightChecker()
            checker.add_check("Tools", check_tools_installed)
            report = checker.run_checks(
                {"tools": [self.config.remote.ssh_executable, self.config.remote.scp_executable]}
            )
            if not report.all_passed:
                raise DependencyMissingError(
                    ", ".join(report.failed[0].details.get("missing", [])) or "ssh"
                )
            self._host = SshRemoteHost(self.config.remote, self.runner, self.username)
        return self._host

    def stores(self) -> dict[Location, ArtifactStore]:
        return {
            Location.LOCAL: LocalArtifactStore(self.config.artifacts, self.runner),
            Location.REMOTE: RemoteArtifactStore(self.host, self.config),
        }

    def sync_manager(self) -> SyncManager:
        return SyncManager(self.host, self.stores(), self.confirmation)

    def transfer(self, direction: Direction) -> SyncStatus:
        """Synchronize the artifact pair in ``direction``."""
        return self.sync_manager().run(direction)

    def build(self, keep_backup: bool | None = None) -> BuildStatus:
        """Build the local image, rotating the existing pair first."""
        store = LocalArtifactStore(
            self.config.artifacts, self.runner, privileged=self.config.build.use_sudo
        )
        return BuildPipeline(self.config, store, self.confirmation, self.runner).run(keep_backup)

    def start(self, nvidia_gpu: bool = False) -> int:
        """Launch the container; returns its exit status."""
        store = LocalArtifactStore(self.config.artifacts, self.runner)
        launcher = ContainerLauncher(
            self.config,
            store,
            self.confirmation,
            self.runner,
            sync_factory=self.sync_manager,
        )
        return launcher.start(nvidia_gpu)

    def inspect(self, include_remote: bool = True) -> list[LocationReport]:
        """State, metadata and size of the pair on each side."""
        if include_remote:
            stores = self.stores()
        else:
            stores = {Location.LOCAL: LocalArtifactStore(self.config.artifacts, self.runner)}
        checker = ConsistencyChecker(stores)
        timestamps = TimestampComparator(stores, checker)

        reports: list[LocationReport] = []
        for location, store in stores.items():
            state = checker.check_state(location)
            report = LocationReport(location=location, image=str(store.pair.image), state=state)
            if state is ConsistencyState.COMPLETE:
                try:
                    report.metadata = timestamps.read_metadata(location, state)
                except ImageForgeError as exc:
                    report.error = exc.message
            if location is Location.LOCAL and store.exists(store.pair.image):
                report.size_bytes = self.config.artifacts.image_file.stat().st_size
            reports.append(report)
        return reports

    def close(self) -> None:
        logger.info(
            "Session closed",
            session_id=self.id,
            duration_seconds=(datetime.now() - self.started_at).total_seconds(),
        )

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
