"""
ImageForge sync module.

Determines the consistency state of the artifact pair on both sides and
transfers it in the requested direction when that is safe.
"""

from imageforge.sync.consistency import ConsistencyChecker
from imageforge.sync.decision import SyncAction, SyncActionKind, decide
from imageforge.sync.manager import SyncManager, SyncStatus
from imageforge.sync.timestamps import TimestampComparator
from imageforge.sync.transfer import TransferExecutor

__all__ = [
    "ConsistencyChecker",
    "SyncAction",
    "SyncActionKind",
    "SyncManager",
    "SyncStatus",
    "TimestampComparator",
    "TransferExecutor",
    "decide",
]
