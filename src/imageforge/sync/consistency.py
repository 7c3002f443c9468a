"""
Consistency state of the artifact pair at each location.
"""

from __future__ import annotations

from imageforge.core.logging import get_logger
from imageforge.core.models import ConsistencyState, Location
from imageforge.platform.base import ArtifactStore

logger = get_logger(__name__)


class ConsistencyChecker:
    """Classifies the artifact pair at a location from its two existence checks."""

    def __init__(self, stores: dict[Location, ArtifactStore]) -> None:
        self.stores = stores

    def check_state(self, location: Location) -> ConsistencyState:
        store = self.stores[location]
        pair = store.pair
        state = ConsistencyState.from_existence(
            store.exists(pair.image),
            store.exists(pair.metadata),
        )
        logger.info(
            f"The {location.value} pair: {state.describe()}",
            location=location.value,
            state=state.name,
        )
        return state
