"""
Launches the Apptainer container from the local image.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable

from imageforge.core.config import ImageForgeConfig
from imageforge.core.errors import ContainerError, DependencyMissingError, OperatorAbortedError
from imageforge.core.logging import get_logger
from imageforge.core.models import Direction
from imageforge.core.safety import Confirmation, PreflightChecker, check_not_in_container
from imageforge.platform.base import CommandRunner
from imageforge.platform.file_ops import LocalArtifactStore
from imageforge.sync.manager import SyncManager

logger = get_logger(__name__)


class ContainerLauncher:
    """Starts the container attached to the terminal.

    ``sync_factory`` is only called when the image is missing and the
    operator agrees to download it.
    """

    def __init__(
        self,
        config: ImageForgeConfig,
        store: LocalArtifactStore,
        confirmation: Confirmation,
        runner: CommandRunner | None = None,
        sync_factory: Callable[[], SyncManager] | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.confirmation = confirmation
        self.runner = runner or CommandRunner()
        self.sync_factory = sync_factory

    def start(self, nvidia_gpu: bool = False) -> int:
        self.ensure_apptainer()

        checker = PreflightChecker()
        checker.add_check("Container", check_not_in_container)
        report = checker.run_checks({})
        if not report.all_passed:
            raise ContainerError(
                "You are already inside an Apptainer container.",
                {"check": report.failed[0].message},
            )

        self.ensure_image()

        if not nvidia_gpu:
            logger.warning(
                "You are not using NVIDIA GPU support. "
                "If you have an NVIDIA GPU, you can enable it by using the --nv option."
            )

        image = Path(self.store.pair.image)
        logger.info(f"Starting Apptainer container from image {image.name}")
        result = self.runner.run(
            self.exec_command(nvidia_gpu),
            capture_output=False,
            env={"APPTAINERENV_WORKSPACE_DIR": str(self.config.container.workspace_dir)},
        )
        if result.returncode < 0:
            raise ContainerError(f"Failed to start container: {result.stderr}")
        return result.returncode

    def mount_paths(self) -> str:
        paths = [*self.config.container.mount_paths, *self.config.profile.mount_paths]
        return ",".join(paths)

    def exec_command(self, nvidia_gpu: bool) -> list[str]:
        command = [self.config.build.apptainer, "exec"]
        if nvidia_gpu:
            command.append("--nv")
        mounts = self.mount_paths()
        if mounts:
            command += ["-B", mounts]
        command += ["-e", str(self.store.pair.image), self.config.container.init_script]
        return command

    def ensure_apptainer(self) -> None:
        apptainer = self.config.build.apptainer
        if shutil.which(apptainer) is not None:
            return

        logger.error("Apptainer is not installed. Please install it first.")
        script = self.config.container.install_script
        if script is None or not self.confirmation.confirm("Do you want to install Apptainer now?"):
            raise DependencyMissingError(apptainer)

        result = self.runner.run(["bash", str(script)], capture_output=False)
        if not result.success or shutil.which(apptainer) is None:
            raise DependencyMissingError(
                apptainer, f"Apptainer installation with {script} did not succeed"
            )

    def ensure_image(self) -> None:
        image = Path(self.store.pair.image)
        if self.store.exists(image):
            return

        logger.error(f"Image file {image} does not exist.")
        if self.sync_factory is None:
            raise ContainerError(f"Image file {image} does not exist.")
        if not self.confirmation.confirm("Do you want to download the image?"):
            raise OperatorAbortedError("Image download declined")
        self.sync_factory().run(Direction.DOWNLOAD)
