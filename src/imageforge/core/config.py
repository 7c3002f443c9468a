"""
ImageForge configuration management.

Provides centralized configuration with validation using Pydantic.
The configuration is constructed once at entry and passed explicitly
to every component.
"""

from __future__ import annotations

import json
import posixpath
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def _expand(v: str | Path) -> Path:
    return Path(v).expanduser().resolve()


class HardwareType(str, Enum):
    """Hardware the image is built for and run on."""

    AMD64 = "amd64"
    ARM64 = "arm64"
    JETSON = "jetson"


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = True
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: Path.home() / ".imageforge" / "logs")

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)


class SafetyConfig(BaseModel):
    """Configuration for operator confirmations."""

    require_confirmation: bool = True


class ArtifactConfig(BaseModel):
    """Location and naming of the local artifact pair."""

    image_dir: Path = Field(default_factory=lambda: Path.home() / ".imageforge" / "images")
    image_name: str = "image.sif"
    metadata_name: str = "image_metadata.json"
    backup_suffix: str = ".bak"
    image_mode: int = 0o775
    metadata_mode: int = 0o664
    owner: str | None = None
    build_dir: Path = Field(default_factory=lambda: Path.home() / ".imageforge" / "build")
    definition_file: str = "image.def"
    build_log_file: str = "build.log"

    @field_validator("image_dir", "build_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)

    @property
    def image_file(self) -> Path:
        return self.image_dir / self.image_name

    @property
    def metadata_file(self) -> Path:
        return self.image_dir / self.metadata_name

    @property
    def definition_path(self) -> Path:
        return self.build_dir / self.definition_file


class RemoteConfig(BaseModel):
    """Remote build/storage host reachable over ssh/scp."""

    server: str = "localhost"
    image_dir: str = "/var/lib/imageforge/images"
    username: str | None = None
    ssh_executable: str = "ssh"
    scp_executable: str = "scp"
    ssh_options: list[str] = Field(default_factory=list)
    # scp takes the port as -P, ssh as -p
    scp_options: list[str] = Field(default_factory=list)

    @field_validator("image_dir")
    @classmethod
    def require_absolute(cls, v: str) -> str:
        if not posixpath.isabs(v):
            raise ValueError(f"Remote image directory must be absolute: {v}")
        return v

    def destination(self, username: str | None = None) -> str:
        """Return the ssh destination, ``user@host`` when a user is known."""
        user = username or self.username
        return f"{user}@{self.server}" if user else self.server


class HardwareProfile(BaseModel):
    """Build flags, environment and mounts selected by hardware type."""

    build_flags: list[str] = Field(default_factory=lambda: ["--nv"])
    build_env: dict[str, str] = Field(default_factory=dict)
    preserve_env: bool = False
    mount_paths: list[str] = Field(default_factory=list)


def _default_profiles() -> dict[HardwareType, HardwareProfile]:
    return {
        HardwareType.AMD64: HardwareProfile(),
        HardwareType.ARM64: HardwareProfile(),
        HardwareType.JETSON: HardwareProfile(
            build_env={
                "APPTAINER_TMPDIR": "~/.apptainer_tmp",
                "APPTAINER_CACHEDIR": "~/.apptainer_cache",
            },
            preserve_env=True,
            mount_paths=["/usr/lib/aarch64-linux-gnu/tegra", "/usr/local/cuda"],
        ),
    }


class BuildConfig(BaseModel):
    """Configuration for the image build pipeline."""

    use_sudo: bool = True
    apptainer: str = "apptainer"
    created_by: str | None = None
    min_free_space_gb: float = Field(default=10.0, ge=0)


class ContainerConfig(BaseModel):
    """Configuration for launching the container."""

    workspace_dir: Path = Field(default_factory=lambda: Path.home() / "workspace")
    init_script: str = "/bin/bash"
    mount_paths: list[str] = Field(default_factory=lambda: ["/tmp/.X11-unix", "/dev"])
    install_script: Path | None = None

    @field_validator("workspace_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)


class ImageForgeConfig(BaseModel):
    """Main ImageForge configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    artifacts: ArtifactConfig = Field(default_factory=ArtifactConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    container: ContainerConfig = Field(default_factory=ContainerConfig)
    hardware: HardwareType = HardwareType.AMD64
    hardware_profiles: dict[HardwareType, HardwareProfile] = Field(
        default_factory=_default_profiles
    )

    @property
    def profile(self) -> HardwareProfile:
        """Profile for the configured hardware type."""
        return self.hardware_profiles.get(self.hardware, HardwareProfile())

    @property
    def remote_image_file(self) -> str:
        return posixpath.join(self.remote.image_dir, self.artifacts.image_name)

    @property
    def remote_metadata_file(self) -> str:
        return posixpath.join(self.remote.image_dir, self.artifacts.metadata_name)

    @property
    def build_log_path(self) -> Path:
        return self.logging.log_directory / self.artifacts.build_log_file

    @classmethod
    def load(cls, config_path: Path | None = None) -> ImageForgeConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = Path.home() / ".imageforge" / "config.json"

        if config_path.exists():
            with open(config_path) as f:
                data = json.load(f)
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = Path.home() / ".imageforge" / "config.json"

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required local directories."""
        self.logging.log_directory.mkdir(parents=True, exist_ok=True)
        self.artifacts.image_dir.mkdir(parents=True, exist_ok=True)


def load_config(config_path: Path | None = None) -> ImageForgeConfig:
    """Load or create configuration."""
    config = ImageForgeConfig.load(config_path)
    config.ensure_directories()
    return config
