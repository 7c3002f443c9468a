"""
Tests for imageforge.sync.decision module.
"""

import pytest

from imageforge.core.models import ConsistencyState, Direction, Location
from imageforge.sync.decision import SyncAction, SyncActionKind, decide

C = ConsistencyState.COMPLETE
IO = ConsistencyState.IMAGE_ONLY_CORRUPT
MO = ConsistencyState.METADATA_ONLY_CORRUPT
A = ConsistencyState.ABSENT

UP = Direction.UPLOAD
DOWN = Direction.DOWNLOAD
LOCAL = Location.LOCAL
REMOTE = Location.REMOTE

PROCEED = SyncAction.proceed()
OVERWRITE = SyncAction.proceed(overwrite=True)
REDIRECT = SyncAction.redirect()
NO_SOURCE = SyncAction.abort_no_source()


def corrupt(location: Location, state: ConsistencyState) -> SyncAction:
    return SyncAction.abort_corrupt(location, state)


# (direction, local, remote) -> action
TABLE = [
    # Upload: source is local
    (UP, C, C, OVERWRITE),
    (UP, C, A, PROCEED),
    (UP, C, IO, corrupt(REMOTE, IO)),
    (UP, C, MO, corrupt(REMOTE, MO)),
    (UP, A, C, REDIRECT),
    (UP, A, A, NO_SOURCE),
    (UP, A, IO, corrupt(REMOTE, IO)),
    (UP, A, MO, corrupt(REMOTE, MO)),
    (UP, IO, C, corrupt(LOCAL, IO)),
    (UP, IO, A, corrupt(LOCAL, IO)),
    (UP, IO, IO, corrupt(LOCAL, IO)),
    (UP, IO, MO, corrupt(LOCAL, IO)),
    (UP, MO, C, corrupt(LOCAL, MO)),
    (UP, MO, A, corrupt(LOCAL, MO)),
    (UP, MO, IO, corrupt(LOCAL, MO)),
    (UP, MO, MO, corrupt(LOCAL, MO)),
    # Download: source is remote
    (DOWN, C, C, OVERWRITE),
    (DOWN, A, C, PROCEED),
    (DOWN, IO, C, corrupt(LOCAL, IO)),
    (DOWN, MO, C, corrupt(LOCAL, MO)),
    (DOWN, C, A, NO_SOURCE),
    (DOWN, A, A, NO_SOURCE),
    (DOWN, IO, A, corrupt(LOCAL, IO)),
    (DOWN, MO, A, corrupt(LOCAL, MO)),
    (DOWN, C, IO, corrupt(REMOTE, IO)),
    (DOWN, A, IO, corrupt(REMOTE, IO)),
    (DOWN, IO, IO, corrupt(REMOTE, IO)),
    (DOWN, MO, IO, corrupt(REMOTE, IO)),
    (DOWN, C, MO, corrupt(REMOTE, MO)),
    (DOWN, A, MO, corrupt(REMOTE, MO)),
    (DOWN, IO, MO, corrupt(REMOTE, MO)),
    (DOWN, MO, MO, corrupt(REMOTE, MO)),
]


class TestDecide:
    """Tests for decide."""

    @pytest.mark.parametrize(("direction", "local", "remote", "expected"), TABLE)
    def test_decision_table(self, direction, local, remote, expected) -> None:
        assert decide(direction, local, remote) == expected

    def test_table_covers_every_combination(self) -> None:
        combos = {(d, l, r) for d, l, r, _ in TABLE}
        assert len(combos) == len(Direction) * len(ConsistencyState) ** 2

    @pytest.mark.parametrize(("direction", "local", "remote", "expected"), TABLE)
    def test_decision_is_deterministic(self, direction, local, remote, expected) -> None:
        assert decide(direction, local, remote) == decide(direction, local, remote)

    def test_redirected_call_proceeds(self) -> None:
        first = decide(UP, A, C)
        assert first.kind is SyncActionKind.REDIRECT_OPPOSITE
        second = decide(UP.opposite, A, C)
        assert second.kind is SyncActionKind.PROCEED
        assert second.overwrite is False

    def test_source_corruption_reported_before_target(self) -> None:
        action = decide(UP, IO, MO)
        assert action.location is LOCAL
        assert action.state is IO
