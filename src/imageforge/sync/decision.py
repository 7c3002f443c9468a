"""
Transfer decision for a requested direction given both sides' states.

``decide`` is a pure function; executing the decision, following a
redirect and asking the operator are the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from imageforge.core.models import ConsistencyState, Direction, Location


class SyncActionKind(Enum):
    PROCEED = auto()
    REDIRECT_OPPOSITE = auto()
    ABORT_CORRUPT = auto()
    ABORT_NO_SOURCE = auto()


@dataclass(frozen=True)
class SyncAction:
    """Outcome of ``decide``.

    ``location`` and ``state`` name the offending side for ``ABORT_CORRUPT``.
    ``overwrite`` is set on ``PROCEED`` when the target already holds a
    complete pair, so the operator has to confirm.
    """

    kind: SyncActionKind
    location: Location | None = None
    state: ConsistencyState | None = None
    overwrite: bool = False

    @classmethod
    def proceed(cls, overwrite: bool = False) -> SyncAction:
        return cls(SyncActionKind.PROCEED, overwrite=overwrite)

    @classmethod
    def redirect(cls) -> SyncAction:
        return cls(SyncActionKind.REDIRECT_OPPOSITE)

    @classmethod
    def abort_corrupt(cls, location: Location, state: ConsistencyState) -> SyncAction:
        return cls(SyncActionKind.ABORT_CORRUPT, location=location, state=state)

    @classmethod
    def abort_no_source(cls) -> SyncAction:
        return cls(SyncActionKind.ABORT_NO_SOURCE)


def decide(
    direction: Direction,
    local_state: ConsistencyState,
    remote_state: ConsistencyState,
) -> SyncAction:
    states = {Location.LOCAL: local_state, Location.REMOTE: remote_state}
    source_state = states[direction.source]
    target_state = states[direction.target]

    if source_state.is_corrupt:
        return SyncAction.abort_corrupt(direction.source, source_state)
    if target_state.is_corrupt:
        return SyncAction.abort_corrupt(direction.target, target_state)

    if source_state is ConsistencyState.ABSENT:
        # Only an upload heals itself: the remote copy is pulled down instead.
        # A download from an empty remote never pushes the local pair up.
        if direction is Direction.UPLOAD and target_state is ConsistencyState.COMPLETE:
            return SyncAction.redirect()
        return SyncAction.abort_no_source()

    return SyncAction.proceed(overwrite=target_state is ConsistencyState.COMPLETE)
