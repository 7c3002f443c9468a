"""
Pytest configuration and fixtures for ImageForge tests.
"""

import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from imageforge.core.config import ImageForgeConfig  # noqa: E402
from imageforge.core.models import ArtifactPair, Direction, ImageMetadata, Location  # noqa: E402
from imageforge.platform.base import ArtifactStore, CommandResult, RemoteHost  # noqa: E402
from imageforge.platform.file_ops import LocalArtifactStore  # noqa: E402
from imageforge.platform.remote import RemoteArtifactStore  # noqa: E402


class FakeRemoteHost(RemoteHost):
    """Remote host whose filesystem is a local temp directory.

    Understands the handful of commands the stores send (``test -f``,
    ``cat``, ``chmod``, ``mkdir -p``). ``fail_copy_to`` makes every copy
    whose destination ends with that string exit with status 1.
    """

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.copies: list[tuple[str, str, Direction]] = []
        self.fail_copy_to: str | None = None
        self.unreachable = False

    @property
    def name(self) -> str:
        return "tester@fake-host"

    def execute(self, command: list[str]) -> CommandResult:
        self.commands.append(command)
        if self.unreachable:
            return CommandResult(255, "", "ssh: connect to host fake-host: Connection refused", command)

        program, *args = command
        if program == "test":
            return CommandResult(0 if Path(args[-1]).is_file() else 1, "", "", command)
        if program == "cat":
            path = Path(args[0])
            if not path.is_file():
                return CommandResult(1, "", f"cat: {path}: No such file or directory", command)
            return CommandResult(0, path.read_text(encoding="utf-8"), "", command)
        if program == "chmod":
            os.chmod(args[1], int(args[0], 8))
            return CommandResult(0, "", "", command)
        if program == "mkdir":
            Path(args[-1]).mkdir(parents=True, exist_ok=True)
            return CommandResult(0, "", "", command)
        return CommandResult(127, "", f"{program}: command not found", command)

    def copy(self, source: str, destination: str, direction: Direction) -> CommandResult:
        self.copies.append((source, destination, direction))
        command = ["scp", source, destination]
        if self.fail_copy_to and destination.endswith(self.fail_copy_to):
            return CommandResult(1, "", "scp: lost connection", command)
        shutil.copyfile(source, destination)
        return CommandResult(0, "", "", command)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> ImageForgeConfig:
    """Configuration with every path inside the temp directory."""
    config = ImageForgeConfig.model_validate(
        {
            "logging": {
                "log_directory": temp_dir / "logs",
                "file_enabled": False,
                "console_enabled": False,
            },
            "safety": {"require_confirmation": True},
            "artifacts": {
                "image_dir": temp_dir / "local" / "images",
                "build_dir": temp_dir / "build",
            },
            "remote": {"server": "fake-host", "image_dir": str(temp_dir / "remote" / "images")},
            "build": {"use_sudo": False, "apptainer": "sh", "min_free_space_gb": 0},
        }
    )
    config.ensure_directories()
    (temp_dir / "remote" / "images").mkdir(parents=True)
    config.artifacts.build_dir.mkdir(parents=True)
    config.artifacts.definition_path.write_text("Bootstrap: docker\nFrom: ubuntu:22.04\n")
    return config


@pytest.fixture
def fake_host() -> FakeRemoteHost:
    return FakeRemoteHost()


@pytest.fixture
def stores(sample_config: ImageForgeConfig, fake_host: FakeRemoteHost) -> dict[Location, ArtifactStore]:
    return {
        Location.LOCAL: LocalArtifactStore(sample_config.artifacts),
        Location.REMOTE: RemoteArtifactStore(fake_host, sample_config),
    }


@pytest.fixture
def local_pair(stores: dict[Location, ArtifactStore]) -> ArtifactPair:
    return stores[Location.LOCAL].pair


@pytest.fixture
def remote_pair(stores: dict[Location, ArtifactStore]) -> ArtifactPair:
    return stores[Location.REMOTE].pair


@pytest.fixture
def write_pair() -> Callable[..., None]:
    """Write image bytes and/or a metadata record for a pair."""

    def _write(
        pair: ArtifactPair,
        image: bytes | None = b"IMAGE",
        metadata: ImageMetadata | None = None,
        with_metadata: bool = True,
    ) -> None:
        if image is not None:
            Path(pair.image).write_bytes(image)
        if with_metadata:
            record = metadata or ImageMetadata.from_dict(
                {"created_at": "2024-01-01 10:00:00", "created_by": "builder"}
            )
            record.write(Path(pair.metadata))

    return _write


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
