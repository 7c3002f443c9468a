"""
Copies the artifact pair between the workstation and the remote host.
"""

from __future__ import annotations

import posixpath
from pathlib import Path

from imageforge.core.errors import RemoteCommandError, TransferToolError
from imageforge.core.logging import OperationLogger, get_logger
from imageforge.core.models import ConsistencyState, Direction, Location
from imageforge.platform.base import ArtifactStore, RemoteHost

logger = get_logger(__name__)


class TransferExecutor:
    """Copies image then metadata as one unit; no partial retry."""

    def __init__(self, host: RemoteHost, stores: dict[Location, ArtifactStore]) -> None:
        self.host = host
        self.stores = stores

    def transfer(self, direction: Direction) -> None:
        source = self.stores[direction.source].pair
        target_store = self.stores[direction.target]
        target = target_store.pair

        with OperationLogger(f"{direction.value} transfer", logger, host=self.host.name):
            self._prepare_destination(direction)

            self.host.copy(str(source.image), str(target.image), direction).raise_for_status(
                TransferToolError, f"Failed to copy image {source.image}"
            )

            result = self.host.copy(str(source.metadata), str(target.metadata), direction)
            if not result.success:
                state = ConsistencyState.IMAGE_ONLY_CORRUPT
                raise TransferToolError(
                    f"Image copied but metadata copy failed (exit status {result.returncode}); "
                    f"the {direction.target.value} pair is now corrupt ({state.describe()}). "
                    "Re-run the whole transfer.",
                    {
                        "location": direction.target.value,
                        "state": state.name,
                        "command": result.command_line,
                    },
                )

            target_store.apply_permissions()

    def _prepare_destination(self, direction: Direction) -> None:
        target = self.stores[direction.target].pair
        if direction.target is Location.LOCAL:
            Path(target.image).parent.mkdir(parents=True, exist_ok=True)
            return
        remote_dir = posixpath.dirname(str(target.image))
        self.host.execute(["mkdir", "-p", remote_dir]).raise_for_status(
            RemoteCommandError, f"Failed to create {remote_dir} on {self.host.name}"
        )
