"""
Tests for imageforge.container.launcher module.
"""

from unittest.mock import MagicMock

import pytest

from imageforge.container.launcher import ContainerLauncher
from imageforge.core.config import HardwareType
from imageforge.core.errors import ContainerError, DependencyMissingError, OperatorAbortedError
from imageforge.core.models import Direction
from imageforge.core.safety import StaticConfirmation
from imageforge.platform.base import CommandResult, CommandRunner
from imageforge.platform.file_ops import LocalArtifactStore


@pytest.fixture(autouse=True)
def on_host(monkeypatch) -> None:
    monkeypatch.setattr("imageforge.core.safety.in_container", lambda: False)


@pytest.fixture
def runner() -> MagicMock:
    runner = MagicMock(spec=CommandRunner)
    runner.run.return_value = CommandResult(0, "", "", ["sh", "exec"])
    return runner


def _launcher(config, runner, answer=True, sync_factory=None) -> ContainerLauncher:
    store = LocalArtifactStore(config.artifacts, runner)
    return ContainerLauncher(config, store, StaticConfirmation(answer), runner, sync_factory)


class TestContainerLauncher:
    """Tests for ContainerLauncher."""

    def test_start(self, sample_config, runner, local_pair, write_pair) -> None:
        write_pair(local_pair)

        assert _launcher(sample_config, runner).start(nvidia_gpu=True) == 0

        command = runner.run.call_args.args[0]
        assert command[:3] == ["sh", "exec", "--nv"]
        assert command[-3:] == ["-e", str(local_pair.image), "/bin/bash"]
        env = runner.run.call_args.kwargs["env"]
        assert env["APPTAINERENV_WORKSPACE_DIR"] == str(sample_config.container.workspace_dir)

    def test_returns_container_exit_status(self, sample_config, runner, local_pair, write_pair) -> None:
        write_pair(local_pair)
        runner.run.return_value = CommandResult(42, "", "", ["sh"])
        assert _launcher(sample_config, runner).start() == 42

    def test_refuses_nesting(self, sample_config, runner, monkeypatch) -> None:
        monkeypatch.setattr("imageforge.core.safety.in_container", lambda: True)
        with pytest.raises(ContainerError):
            _launcher(sample_config, runner).start()
        runner.run.assert_not_called()

    def test_missing_image_downloads(self, sample_config, runner, local_pair, write_pair) -> None:
        manager = MagicMock()
        manager.run.side_effect = lambda direction: write_pair(local_pair)

        _launcher(sample_config, runner, sync_factory=lambda: manager).start()

        manager.run.assert_called_once_with(Direction.DOWNLOAD)
        assert runner.run.called

    def test_download_declined(self, sample_config, runner) -> None:
        manager = MagicMock()
        launcher = _launcher(sample_config, runner, answer=False, sync_factory=lambda: manager)

        with pytest.raises(OperatorAbortedError):
            launcher.start()
        manager.run.assert_not_called()
        assert launcher.confirmation.prompts == ["Do you want to download the image?"]

    def test_missing_image_without_remote(self, sample_config, runner) -> None:
        with pytest.raises(ContainerError):
            _launcher(sample_config, runner).start()

    def test_missing_apptainer(self, sample_config, runner) -> None:
        sample_config.build.apptainer = "imageforge-no-such-tool"
        with pytest.raises(DependencyMissingError):
            _launcher(sample_config, runner).start()
        runner.run.assert_not_called()

    def test_guided_install_declined(self, sample_config, runner, temp_dir) -> None:
        sample_config.build.apptainer = "imageforge-no-such-tool"
        sample_config.container.install_script = temp_dir / "install.sh"
        launcher = _launcher(sample_config, runner, answer=False)

        with pytest.raises(DependencyMissingError):
            launcher.start()
        assert launcher.confirmation.prompts == ["Do you want to install Apptainer now?"]


class TestExecCommand:
    def test_mounts_follow_hardware(self, sample_config, runner) -> None:
        sample_config.hardware = HardwareType.JETSON
        mounts = _launcher(sample_config, runner).mount_paths().split(",")
        assert mounts[:2] == ["/tmp/.X11-unix", "/dev"]
        assert "/usr/local/cuda" in mounts

    def test_without_gpu(self, sample_config, runner) -> None:
        command = _launcher(sample_config, runner).exec_command(nvidia_gpu=False)
        assert "--nv" not in command
        assert command[2:4] == ["-B", "/tmp/.X11-unix,/dev"]
