"""Price history and change detection over committed snapshots."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from autoprice.core.models import (
    BrandId,
    Index,
    MarketEvent,
    MarketEvents,
    PriceChangeEvent,
    PricePoint,
    Snapshot,
    TrackedVehicle,
    TrendDirection,
    TrendSummary,
    VehicleIdentity,
)
from autoprice.normalize.identity import identity
from autoprice.storage.index import IndexMaintainer
from autoprice.storage.snapshots import SnapshotStore
from autoprice.trends.cache import TrendCache
from autoprice.trends.events import build_market_events, diff_snapshots

logger = logging.getLogger(__name__)

DEFAULT_MAX_POINTS = 30


class TrendEngine:
    """Read side of the dataset.

    Only dates listed in the index are ever read, so a snapshot that is
    still being written by a collection run is never observed. Series
    results are memoised in the injected ``TrendCache``; call
    ``cache.clear()`` after a collection run to see new dates immediately.
    """

    def __init__(
        self,
        snapshots: SnapshotStore,
        index: IndexMaintainer,
        cache: TrendCache[list[PricePoint]] | None = None,
        max_points: int = DEFAULT_MAX_POINTS,
    ) -> None:
        self._snapshots = snapshots
        self._index = index
        self._cache = cache if cache is not None else TrendCache()
        self._max_points = max_points

    @property
    def cache(self) -> TrendCache[list[PricePoint]]:
        return self._cache

    # --- Series ---

    def series(
        self,
        brand_id: BrandId,
        vehicle_id: VehicleIdentity,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[PricePoint]:
        """Chronological prices of one vehicle within an optional window.

        Only the most recent ``max_points`` indexed dates of the window are
        considered. Dates whose snapshot lacks the vehicle are omitted.
        """
        key = (brand_id, vehicle_id, from_date, to_date)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        entry = self._index.load().get(brand_id)
        if entry is None:
            return []

        dates = [
            d
            for d in entry.available_dates
            if (from_date is None or d >= from_date) and (to_date is None or d <= to_date)
        ][-self._max_points :]

        points: list[PricePoint] = []
        for day in dates:
            snapshot = self._snapshots.read(brand_id, day)
            if snapshot is None:
                logger.warning("Indexed snapshot missing: %s on %s", brand_id, day)
                continue
            row = snapshot.find(vehicle_id)
            if row is not None:
                points.append(PricePoint(day=day, price=row.price_numeric))

        self._cache.set(key, points)
        return list(points)

    def summarize(
        self, vehicle_id: VehicleIdentity, points: Iterable[PricePoint]
    ) -> TrendSummary:
        """First-to-last movement of a series. Flat with fewer than two points."""
        ordered = sorted(points, key=lambda p: p.day)
        if not ordered:
            return TrendSummary(identity=vehicle_id, points=[])

        first, last = ordered[0].price, ordered[-1].price
        change = last - first if len(ordered) > 1 else 0.0
        if change > 0:
            direction = TrendDirection.UP
        elif change < 0:
            direction = TrendDirection.DOWN
        else:
            direction = TrendDirection.FLAT

        return TrendSummary(
            identity=vehicle_id,
            points=ordered,
            first_price=first,
            last_price=last,
            change=change,
            change_percent=change / first * 100 if first > 0 else 0.0,
            direction=direction,
        )

    # --- Change Detection ---

    def detect_change(self, tracked: TrackedVehicle) -> PriceChangeEvent | None:
        """Compare a tracked vehicle with the brand's latest snapshot.

        ``None`` when the brand, snapshot or vehicle is unknown, or when the
        price is exactly unchanged.
        """
        index = self._index.load()
        snapshot = self._latest_snapshot(index, self._brand_id(index, tracked))
        if snapshot is None:
            return None
        return compare(tracked, snapshot)

    def detect_changes(
        self, tracked: Iterable[TrackedVehicle]
    ) -> list[PriceChangeEvent]:
        """Batch ``detect_change``; each brand's latest snapshot is read once."""
        index = self._index.load()
        by_brand: dict[BrandId, list[TrackedVehicle]] = defaultdict(list)
        for vehicle in tracked:
            brand_id = self._brand_id(index, vehicle)
            if brand_id is None:
                logger.debug("No indexed brand for tracked vehicle %s", vehicle.id)
                continue
            by_brand[brand_id].append(vehicle)

        events: list[PriceChangeEvent] = []
        for brand_id, vehicles in by_brand.items():
            snapshot = self._latest_snapshot(index, brand_id)
            if snapshot is None:
                continue
            for vehicle in vehicles:
                event = compare(vehicle, snapshot)
                if event is not None:
                    events.append(event)
        return events

    # --- Market Events ---

    def market_events(self, brand_id: BrandId | None = None) -> MarketEvents:
        """Changes between each brand's two newest indexed snapshots.

        Brands with a single indexed date contribute nothing. The report's
        ``date`` pair is that of the brand updated most recently.
        ``brand_id`` restricts the report to one brand.
        """
        index = self._index.load()
        if brand_id is None:
            entries = index.brands
        else:
            entry = index.get(brand_id)
            entries = {brand_id: entry} if entry is not None else {}

        events: list[MarketEvent] = []
        day: date | None = None
        previous_day: date | None = None
        for bid, entry in entries.items():
            if len(entry.available_dates) < 2:
                logger.debug("%s: no previous date to compare against", bid)
                continue
            before, latest = entry.available_dates[-2:]
            current = self._snapshots.read(bid, latest)
            previous = self._snapshots.read(bid, before)
            if current is None or previous is None:
                logger.warning("Indexed snapshot missing: %s on %s or %s", bid, before, latest)
                continue
            events.extend(diff_snapshots(current, previous, latest, before))
            if day is None or latest > day:
                day, previous_day = latest, before

        names = {bid: entry.name for bid, entry in index.brands.items()}
        return build_market_events(events, names, day, previous_day)

    def _brand_id(self, index: Index, tracked: TrackedVehicle) -> BrandId | None:
        if tracked.brand_id and tracked.brand_id in index.brands:
            return tracked.brand_id
        return index.resolve_brand_id(tracked.brand)

    def _latest_snapshot(self, index: Index, brand_id: BrandId | None) -> Snapshot | None:
        if brand_id is None:
            return None
        entry = index.get(brand_id)
        if entry is None or entry.latest_date is None:
            return None
        return self._snapshots.read(brand_id, entry.latest_date)


def compare(tracked: TrackedVehicle, snapshot: Snapshot) -> PriceChangeEvent | None:
    """Change event for ``tracked`` against one snapshot, if its price moved."""
    tracked = keyed_to(tracked, snapshot.brand)
    row = snapshot.find(tracked.id)
    if row is None or row.price_numeric == tracked.last_price:
        return None

    diff = row.price_numeric - tracked.last_price
    return PriceChangeEvent(
        vehicle=tracked,
        old_price=tracked.last_price,
        new_price=row.price_numeric,
        old_price_raw=tracked.last_price_raw,
        new_price_raw=row.price_raw,
        diff=diff,
        diff_percent=diff / tracked.last_price * 100 if tracked.last_price > 0 else 0.0,
    )


def keyed_to(tracked: TrackedVehicle, brand_name: str) -> TrackedVehicle:
    """Re-derive an auto-filled id from the snapshot's brand display name.

    A vehicle tracked as ``brand="skoda"`` gets the id ``skoda-...`` while
    rows are keyed ``škoda-...``. Explicitly supplied ids are left alone.
    """
    derived = identity(tracked.brand, tracked.model, tracked.trim, tracked.engine)
    if tracked.id != derived:
        return tracked
    canonical = identity(brand_name, tracked.model, tracked.trim, tracked.engine)
    if canonical == derived:
        return tracked
    return tracked.model_copy(update={"id": canonical})
