"""Availability index: ``<data_dir>/index.json``."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from autoprice.core.exceptions import StorageError
from autoprice.core.models import BrandId, BrandIndexEntry, Index, RunReport
from autoprice.storage.files import atomic_write_text, read_json, render
from autoprice.storage.snapshots import SnapshotStore

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"
HEALTH_REPORT_FILENAME = "health-report.json"


class IndexMaintainer:
    """Single writer of the availability index.

    ``record_date`` does a read-modify-write of the whole document while
    holding an ``asyncio.Lock``, so concurrent source tasks in one process
    cannot lose each other's updates. Share one instance per data directory.
    """

    def __init__(self, snapshots: SnapshotStore) -> None:
        self._snapshots = snapshots
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._snapshots.root / INDEX_FILENAME

    def load(self) -> Index:
        """Read the index; empty when none has been written yet.

        Raises:
            StorageError: If the index exists but cannot be parsed.
        """
        path = self.path
        if not path.is_file():
            return Index()
        try:
            return Index.model_validate(read_json(path))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(
                f"Corrupt index at {path}: {e}",
                context={"operation": "load", "path": str(path)},
            ) from e

    async def record_date(
        self,
        brand_id: BrandId,
        brand_name: str,
        day: date,
        record_count: int,
    ) -> Index:
        """Add ``day`` to the brand's available dates and persist the index.

        The snapshot for (brand, day) must already be on disk.

        Raises:
            StorageError: If the snapshot is missing, or the index cannot be
                read or written.
        """
        async with self._lock:
            return await asyncio.to_thread(
                self._record_date_sync, brand_id, brand_name, day, record_count
            )

    def _record_date_sync(
        self,
        brand_id: BrandId,
        brand_name: str,
        day: date,
        record_count: int,
    ) -> Index:
        snapshot_path = self._snapshots.path_for(brand_id, day)
        if not snapshot_path.is_file():
            raise StorageError(
                f"Refusing to index {brand_id} on {day}: snapshot missing",
                context={"operation": "record_date", "path": str(snapshot_path)},
            )

        current = self.load()
        entry = current.brands.get(brand_id) or BrandIndexEntry(name=brand_name)
        brands = dict(current.brands)
        brands[brand_id] = entry.with_date(day, record_count, name=brand_name)
        updated = Index(last_updated=datetime.now(timezone.utc), brands=brands)

        try:
            atomic_write_text(self.path, render(updated))
        except OSError as e:
            raise StorageError(
                f"Failed to write index: {e}",
                context={"operation": "record_date", "path": str(self.path)},
            ) from e

        logger.debug("Indexed %s on %s (%d records)", brand_id, day, record_count)
        return updated

    async def write_report(self, report: RunReport) -> Path:
        """Persist a run's health report next to the index."""
        path = self._snapshots.root / HEALTH_REPORT_FILENAME
        try:
            await asyncio.to_thread(atomic_write_text, path, render(report))
        except OSError as e:
            raise StorageError(
                f"Failed to write health report: {e}",
                context={"operation": "write_report", "path": str(path)},
            ) from e
        return path

    def load_report(self) -> RunReport | None:
        path = self._snapshots.root / HEALTH_REPORT_FILENAME
        if not path.is_file():
            return None
        try:
            return RunReport.model_validate(read_json(path))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unreadable health report %s: %s", path, e)
            return None
