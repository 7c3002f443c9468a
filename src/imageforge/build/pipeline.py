"""
ImageForge build pipeline.

Backup rotation -> external build tool -> metadata stamp -> permissions.
Each step aborts the rest on failure; nothing is rolled back.
"""

from __future__ import annotations

import getpass
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from imageforge.build.backup import BackupManager
from imageforge.core.config import ImageForgeConfig
from imageforge.core.errors import (
    ArtifactStoreError,
    BuildToolError,
    DependencyMissingError,
)
from imageforge.core.logging import OperationLogger, get_logger
from imageforge.core.models import ConsistencyState, ImageMetadata, Location
from imageforge.core.safety import (
    Confirmation,
    PreflightChecker,
    check_free_space,
    check_tools_installed,
)
from imageforge.platform.base import CommandRunner
from imageforge.platform.file_ops import LocalArtifactStore
from imageforge.sync.consistency import ConsistencyChecker

logger = get_logger(__name__)

GIB = 1024**3


def resolve_identity(config: ImageForgeConfig, runner: CommandRunner) -> str:
    """Identity recorded as ``created_by``: config override, git user name, login name."""
    if config.build.created_by:
        return config.build.created_by
    result = runner.run(["git", "config", "--get", "user.name"])
    if result.success and result.stdout.strip():
        return result.stdout.strip()
    return getpass.getuser()


@dataclass
class BuildStatus:
    image: Path
    log_file: Path
    started_at: datetime
    previous_state: ConsistencyState
    kept_backup: bool | None = None
    metadata: ImageMetadata | None = None
    ended_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "image": str(self.image),
            "log_file": str(self.log_file),
            "previous_state": self.previous_state.name,
            "kept_backup": self.kept_backup,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


class BuildPipeline:
    """Builds the local image and stamps its metadata."""

    def __init__(
        self,
        config: ImageForgeConfig,
        store: LocalArtifactStore,
        confirmation: Confirmation,
        runner: CommandRunner | None = None,
        backup: BackupManager | None = None,
        identity: Callable[[], str] | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.confirmation = confirmation
        self.runner = runner or CommandRunner()
        self.backup = backup or BackupManager(config.artifacts.backup_suffix)
        self.identity = identity or (lambda: resolve_identity(self.config, self.runner))
        self.checker = ConsistencyChecker({Location.LOCAL: store})

    def run(self, keep_backup: bool | None = None) -> BuildStatus:
        """Build the image.

        ``keep_backup`` answers the backup question up front; when ``None``
        the operator is asked if the slot is occupied.
        """
        pair = self.store.pair
        definition = self.config.artifacts.definition_path

        with OperationLogger("image build", logger, image=str(pair.image), definition=str(definition)):
            self.preflight()

            state = self.checker.check_state(Location.LOCAL)
            status = BuildStatus(
                image=Path(pair.image),
                log_file=self.config.build_log_path,
                started_at=datetime.now(),
                previous_state=state,
            )

            if state is not ConsistencyState.ABSENT:
                if keep_backup is None:
                    keep_backup = self.confirmation.confirm(
                        f"This will remove the old image {Path(pair.image).name}. "
                        "Do you want to create backup?"
                    )
                self.backup.rotate(pair, keep_backup)
                status.kept_backup = keep_backup
                if self.checker.check_state(Location.LOCAL) is not ConsistencyState.ABSENT:
                    raise ArtifactStoreError(
                        f"Image slot {pair.image} is still occupied after rotation",
                        {"image": str(pair.image)},
                    )

            self.build_image()
            status.metadata = self.stamp_metadata()
            self.store.apply_permissions()
            status.ended_at = datetime.now()

        return status

    def preflight(self) -> None:
        checker = PreflightChecker()
        checker.add_check("Tools", check_tools_installed)
        checker.add_check("Free Space", check_free_space)
        report = checker.run_checks(
            {
                "tools": [self.config.build.apptainer],
                "path": self.config.artifacts.image_dir,
                "min_free_bytes": int(self.config.build.min_free_space_gb * GIB),
            }
        )
        for check in report.failed:
            if check.name == "Tools":
                raise DependencyMissingError(self.config.build.apptainer)
            raise ArtifactStoreError(f"{check.name}: {check.message}", check.details)

        definition = self.config.artifacts.definition_path
        if not definition.is_file():
            raise BuildToolError(
                f"Definition file {definition} does not exist", {"definition": str(definition)}
            )

    def build_command(self) -> tuple[list[str], dict[str, str]]:
        """Build tool invocation and extra environment for the hardware profile."""
        profile = self.config.profile
        pair = self.store.pair
        command = [
            self.config.build.apptainer,
            "build",
            *profile.build_flags,
            str(pair.image),
            str(self.config.artifacts.definition_path),
        ]
        env = {key: str(Path(value).expanduser()) for key, value in profile.build_env.items()}
        if self.config.build.use_sudo:
            command = ["sudo", "-E", *command] if profile.preserve_env else ["sudo", *command]
        return command, env

    def build_image(self) -> None:
        command, env = self.build_command()
        log_file = self.config.build_log_path
        logger.info(
            "Building image",
            image=str(self.store.pair.image),
            hardware=self.config.hardware.value,
            log_file=str(log_file),
        )
        self.runner.stream(
            command,
            log_file=log_file,
            cwd=self.config.artifacts.build_dir,
            env=env or None,
        ).raise_for_status(BuildToolError, f"Image build failed, see {log_file}")

        if not Path(self.store.pair.image).is_file():
            raise BuildToolError(
                f"Build tool succeeded but produced no image at {self.store.pair.image}",
                {"image": str(self.store.pair.image)},
            )

    def stamp_metadata(self) -> ImageMetadata:
        metadata = ImageMetadata.stamp(self.identity())
        path = Path(self.store.pair.metadata)
        try:
            metadata.write(path)
        except OSError as exc:
            raise ArtifactStoreError(f"Failed to write metadata {path}: {exc}") from exc
        logger.info("Metadata written", **metadata.to_dict())
        return metadata
