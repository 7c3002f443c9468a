"""
Tests for imageforge.sync.consistency module.
"""

from pathlib import Path

import pytest

from imageforge.core.errors import RemoteCommandError
from imageforge.core.models import ConsistencyState, Location
from imageforge.sync.consistency import ConsistencyChecker

CASES = [
    (True, True, ConsistencyState.COMPLETE),
    (True, False, ConsistencyState.IMAGE_ONLY_CORRUPT),
    (False, True, ConsistencyState.METADATA_ONLY_CORRUPT),
    (False, False, ConsistencyState.ABSENT),
]


def _populate(pair, image: bool, metadata: bool) -> None:
    if image:
        Path(pair.image).write_bytes(b"IMAGE")
    if metadata:
        Path(pair.metadata).write_text("{}")


class TestConsistencyChecker:
    """Tests for ConsistencyChecker."""

    @pytest.mark.parametrize(("image", "metadata", "expected"), CASES)
    def test_local_state(self, stores, local_pair, image, metadata, expected) -> None:
        _populate(local_pair, image, metadata)
        assert ConsistencyChecker(stores).check_state(Location.LOCAL) is expected

    @pytest.mark.parametrize(("image", "metadata", "expected"), CASES)
    def test_remote_state(self, stores, remote_pair, fake_host, image, metadata, expected) -> None:
        _populate(remote_pair, image, metadata)
        assert ConsistencyChecker(stores).check_state(Location.REMOTE) is expected
        assert ["test", "-f", str(remote_pair.image)] in fake_host.commands

    def test_check_has_no_side_effects(self, stores, local_pair) -> None:
        checker = ConsistencyChecker(stores)
        assert checker.check_state(Location.LOCAL) is ConsistencyState.ABSENT
        assert checker.check_state(Location.LOCAL) is ConsistencyState.ABSENT
        assert not Path(local_pair.image).exists()

    def test_unreachable_remote_is_not_absence(self, stores, fake_host) -> None:
        fake_host.unreachable = True
        with pytest.raises(RemoteCommandError):
            ConsistencyChecker(stores).check_state(Location.REMOTE)
