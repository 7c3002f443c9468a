"""
ImageForge data models.

Defines the artifact pair, its metadata record and the enumerations the
consistency engine reasons about.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Any

METADATA_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class Location(Enum):
    """Where an artifact pair lives."""

    LOCAL = "local"
    REMOTE = "remote"

    @property
    def other(self) -> Location:
        return Location.REMOTE if self is Location.LOCAL else Location.LOCAL


class Direction(Enum):
    """Transfer direction."""

    UPLOAD = "upload"
    DOWNLOAD = "download"

    @property
    def source(self) -> Location:
        return Location.LOCAL if self is Direction.UPLOAD else Location.REMOTE

    @property
    def target(self) -> Location:
        return self.source.other

    @property
    def opposite(self) -> Direction:
        return Direction.DOWNLOAD if self is Direction.UPLOAD else Direction.UPLOAD


class ConsistencyState(Enum):
    """Existence classification of an artifact pair at one location."""

    COMPLETE = auto()
    IMAGE_ONLY_CORRUPT = auto()
    METADATA_ONLY_CORRUPT = auto()
    ABSENT = auto()

    @classmethod
    def from_existence(cls, image_exists: bool, metadata_exists: bool) -> ConsistencyState:
        if image_exists and metadata_exists:
            return cls.COMPLETE
        if image_exists:
            return cls.IMAGE_ONLY_CORRUPT
        if metadata_exists:
            return cls.METADATA_ONLY_CORRUPT
        return cls.ABSENT

    @property
    def is_corrupt(self) -> bool:
        return self in (ConsistencyState.IMAGE_ONLY_CORRUPT, ConsistencyState.METADATA_ONLY_CORRUPT)

    def describe(self) -> str:
        return {
            ConsistencyState.COMPLETE: "both image and metadata files exist",
            ConsistencyState.IMAGE_ONLY_CORRUPT: "only the image file exists, metadata is missing",
            ConsistencyState.METADATA_ONLY_CORRUPT: "only the metadata file exists, image is missing",
            ConsistencyState.ABSENT: "neither image nor metadata files exist",
        }[self]


@dataclass(frozen=True)
class ArtifactPair:
    """Image and metadata paths at one location.

    Remote paths are POSIX strings on the remote host; local paths are
    ``Path`` objects.
    """

    location: Location
    image: Path | str
    metadata: Path | str

    def with_suffix(self, suffix: str) -> ArtifactPair:
        """Return the pair with ``suffix`` appended to both file names."""
        if self.location is Location.LOCAL:
            image = Path(self.image)
            metadata = Path(self.metadata)
            return ArtifactPair(
                self.location,
                image.with_name(image.name + suffix),
                metadata.with_name(metadata.name + suffix),
            )
        return ArtifactPair(self.location, f"{self.image}{suffix}", f"{self.metadata}{suffix}")


@dataclass(frozen=True)
class ImageMetadata:
    """Creation record written next to every image."""

    created_at: datetime
    created_by: str

    @classmethod
    def stamp(cls, created_by: str) -> ImageMetadata:
        """Create a record for an image built now."""
        return cls(created_at=datetime.now().replace(microsecond=0), created_by=created_by)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_at": self.created_at.strftime(METADATA_TIME_FORMAT),
            "created_by": self.created_by,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4) + "\n"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageMetadata:
        return cls(
            created_at=datetime.strptime(data["created_at"], METADATA_TIME_FORMAT),
            created_by=str(data["created_by"]),
        )

    @classmethod
    def from_json(cls, text: str) -> ImageMetadata:
        return cls.from_dict(json.loads(text))

    def write(self, path: Path) -> None:
        path.write_text(self.to_json(), encoding="utf-8")
