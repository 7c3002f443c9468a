"""
Creation timestamps recorded in each side's metadata, for operator display.
"""

from __future__ import annotations

from datetime import datetime

from imageforge.core.errors import ImageForgeError, MetadataUnreadableError
from imageforge.core.models import ConsistencyState, ImageMetadata, Location
from imageforge.platform.base import ArtifactStore
from imageforge.sync.consistency import ConsistencyChecker


class TimestampComparator:
    """Reads ``created_at`` from metadata. Never decides a transfer."""

    def __init__(self, stores: dict[Location, ArtifactStore], checker: ConsistencyChecker) -> None:
        self.stores = stores
        self.checker = checker

    def read_metadata(
        self, location: Location, state: ConsistencyState | None = None
    ) -> ImageMetadata:
        """Read the metadata record at ``location``.

        ``state`` skips the existence round trip when the caller already
        classified the location.
        """
        if state is None:
            state = self.checker.check_state(location)
        if state is not ConsistencyState.COMPLETE:
            raise MetadataUnreadableError(
                f"Cannot read {location.value} metadata: {state.describe()}",
                {"location": location.value, "state": state.name},
            )
        store = self.stores[location]
        try:
            return ImageMetadata.from_json(store.read_text(store.pair.metadata))
        except (OSError, ImageForgeError, ValueError, KeyError, TypeError) as exc:
            # JSONDecodeError and strptime failures are ValueErrors
            raise MetadataUnreadableError(
                f"Cannot parse {location.value} metadata {store.pair.metadata}: {exc}",
                {"location": location.value},
            ) from exc

    def read_created_at(
        self, location: Location, state: ConsistencyState | None = None
    ) -> datetime:
        return self.read_metadata(location, state).created_at

    @staticmethod
    def compare(local: datetime, remote: datetime) -> str:
        if local > remote:
            return "local image is newer"
        if remote > local:
            return "remote image is newer"
        return "both images have the same timestamp"
