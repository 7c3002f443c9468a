"""
ImageForge sync manager.

Runs the decide -> execute flow for one requested direction, following at
most one self-healing redirect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from imageforge.core.errors import (
    CorruptArtifactPairError,
    ImageForgeError,
    InternalRedirectLoopError,
    MetadataUnreadableError,
    NoArtifactAtSourceError,
    OperatorAbortedError,
)
from imageforge.core.logging import get_logger
from imageforge.core.models import ConsistencyState, Direction, Location
from imageforge.core.safety import Confirmation
from imageforge.platform.base import ArtifactStore, RemoteHost
from imageforge.sync.consistency import ConsistencyChecker
from imageforge.sync.decision import SyncAction, SyncActionKind, decide
from imageforge.sync.timestamps import TimestampComparator
from imageforge.sync.transfer import TransferExecutor

logger = get_logger(__name__)


@dataclass
class SyncStatus:
    requested: Direction
    direction: Direction
    local_state: ConsistencyState
    remote_state: ConsistencyState
    action: SyncActionKind
    started_at: datetime
    ended_at: datetime | None = None
    local_created_at: datetime | None = None
    remote_created_at: datetime | None = None
    transferred: bool = False
    notes: list[str] = field(default_factory=list)

    @property
    def redirected(self) -> bool:
        return self.requested is not self.direction

    def to_dict(self) -> dict[str, object]:
        return {
            "requested": self.requested.value,
            "direction": self.direction.value,
            "redirected": self.redirected,
            "local_state": self.local_state.name,
            "remote_state": self.remote_state.name,
            "action": self.action.name,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "local_created_at": self.local_created_at.isoformat() if self.local_created_at else None,
            "remote_created_at": (
                self.remote_created_at.isoformat() if self.remote_created_at else None
            ),
            "transferred": self.transferred,
            "notes": self.notes,
        }


class SyncManager:
    """Synchronizes the artifact pair between the workstation and the remote host."""

    def __init__(
        self,
        host: RemoteHost,
        stores: dict[Location, ArtifactStore],
        confirmation: Confirmation,
    ) -> None:
        self.host = host
        self.stores = stores
        self.confirmation = confirmation
        self.checker = ConsistencyChecker(stores)
        self.timestamps = TimestampComparator(stores, self.checker)
        self.executor = TransferExecutor(host, stores)

    def run(self, direction: Direction) -> SyncStatus:
        return self._run(direction, requested=direction, redirected=False)

    def _run(self, direction: Direction, requested: Direction, redirected: bool) -> SyncStatus:
        logger.info(
            "Checking the status of the local and remote image files",
            direction=direction.value,
            host=self.host.name,
        )
        local_state = self.checker.check_state(Location.LOCAL)
        remote_state = self.checker.check_state(Location.REMOTE)
        action = decide(direction, local_state, remote_state)

        status = SyncStatus(
            requested=requested,
            direction=direction,
            local_state=local_state,
            remote_state=remote_state,
            action=action.kind,
            started_at=datetime.now(),
        )

        if action.kind is SyncActionKind.REDIRECT_OPPOSITE:
            if redirected:
                raise InternalRedirectLoopError(
                    f"Redirect requested twice (local {local_state.name}, remote {remote_state.name})",
                    {"direction": direction.value},
                )
            logger.info(
                f"Nothing to {direction.value}; performing a {direction.opposite.value} instead",
                local_state=local_state.name,
                remote_state=remote_state.name,
            )
            return self._run(direction.opposite, requested=requested, redirected=True)

        self._raise_for_abort(direction, action)

        if action.overwrite:
            self._confirm_overwrite(direction, status)

        self.executor.transfer(direction)
        status.transferred = True
        status.ended_at = datetime.now()
        logger.info("The image and metadata files have been successfully transferred")
        return status

    def _raise_for_abort(self, direction: Direction, action: SyncAction) -> None:
        if action.kind is SyncActionKind.ABORT_CORRUPT:
            if action.location is None or action.state is None:
                raise ImageForgeError(
                    "Corrupt-pair abort without an offending location",
                    {"direction": direction.value},
                )
            raise CorruptArtifactPairError(action.location, action.state)
        if action.kind is SyncActionKind.ABORT_NO_SOURCE:
            if direction is Direction.UPLOAD:
                message = (
                    "Neither local image nor metadata files exist. "
                    "Cannot upload the image. Please build the image first."
                )
            else:
                message = "Neither remote image nor metadata files exist. Cannot download the image."
            raise NoArtifactAtSourceError(message, {"direction": direction.value})

    def _created_at(self, location: Location, state: ConsistencyState) -> datetime | None:
        try:
            return self.timestamps.read_created_at(location, state)
        except MetadataUnreadableError as exc:
            logger.warning(
                f"The {location.value} image timestamp is unavailable",
                location=location.value,
                error=exc.message,
            )
            return None

    def _confirm_overwrite(self, direction: Direction, status: SyncStatus) -> None:
        logger.info("Checking the timestamps of the local and remote image files")
        status.local_created_at = self._created_at(Location.LOCAL, status.local_state)
        status.remote_created_at = self._created_at(Location.REMOTE, status.remote_state)
        if status.local_created_at and status.remote_created_at:
            comparison = self.timestamps.compare(status.local_created_at, status.remote_created_at)
        else:
            comparison = "timestamps cannot be compared"
        status.notes.append(comparison)
        logger.info(
            f"Local image timestamp: {status.local_created_at or ''}, "
            f"remote image timestamp: {status.remote_created_at or ''} ({comparison})"
        )

        if not self.confirmation.confirm(f"Do you want to continue with the {direction.value}?"):
            logger.info(f"Aborting the {direction.value}")
            raise OperatorAbortedError(f"Aborted the {direction.value}")
