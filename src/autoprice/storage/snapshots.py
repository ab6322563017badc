"""Dated snapshot files: ``<data_dir>/<YYYY>/<MM>/<brandId>/<DD>.json``."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from autoprice.core.exceptions import WriteError
from autoprice.core.models import BrandId, CanonicalVehicleRow, Snapshot
from autoprice.storage.files import atomic_write_text, read_json, render

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes per-brand, per-day snapshot documents.

    All methods are synchronous and do blocking file I/O; async callers wrap
    them in ``asyncio.to_thread``.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._root = Path(data_dir)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, brand_id: BrandId, day: date) -> Path:
        return (
            self._root
            / f"{day.year:04d}"
            / f"{day.month:02d}"
            / brand_id
            / f"{day.day:02d}.json"
        )

    def exists(self, brand_id: BrandId, day: date) -> bool:
        return self.path_for(brand_id, day).is_file()

    def write(
        self,
        brand_id: BrandId,
        brand_name: str,
        day: date,
        rows: list[CanonicalVehicleRow],
        collected_at: datetime | None = None,
    ) -> Snapshot:
        """Persist the rows of one brand for one day.

        Re-running for the same (brand, day) replaces the file; the write is
        atomic, so readers never observe a partial document.

        Raises:
            WriteError: If the snapshot cannot be built or written.
        """
        path = self.path_for(brand_id, day)
        try:
            snapshot = Snapshot(
                collected_at=collected_at or datetime.now(timezone.utc),
                brand=brand_name,
                brand_id=brand_id,
                row_count=len(rows),
                rows=rows,
            )
            atomic_write_text(path, render(snapshot))
        except (OSError, ValidationError) as e:
            raise WriteError(
                f"Failed to write snapshot for {brand_id} on {day}: {e}",
                context={"operation": "write", "path": str(path)},
            ) from e

        logger.debug("Wrote %d rows to %s", len(rows), path)
        return snapshot

    def read(self, brand_id: BrandId, day: date) -> Snapshot | None:
        """Load a snapshot; ``None`` when it is absent or unreadable."""
        path = self.path_for(brand_id, day)
        if not path.is_file():
            return None
        try:
            return Snapshot.model_validate(read_json(path))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unreadable snapshot %s: %s", path, e)
            return None
