"""autoprice.storage — Snapshot files and the availability index."""

from autoprice.storage.index import (
    HEALTH_REPORT_FILENAME,
    INDEX_FILENAME,
    IndexMaintainer,
)
from autoprice.storage.snapshots import SnapshotStore

__all__ = [
    "HEALTH_REPORT_FILENAME",
    "INDEX_FILENAME",
    "IndexMaintainer",
    "SnapshotStore",
]
