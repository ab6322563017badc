"""Market events: what changed between a brand's two newest snapshots."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Iterable, Mapping

from autoprice.core.models import (
    BrandId,
    CanonicalVehicleRow,
    MarketEvent,
    MarketEvents,
    MarketEventSummary,
    MarketEventType,
    Snapshot,
    VehicleIdentity,
    VolatilityMetric,
)

# Cap for the per-model volatility list and each big-moves list.
TOP_N = 20

PRICE_MOVES = (MarketEventType.PRICE_INCREASE, MarketEventType.PRICE_DECREASE)


def diff_snapshots(
    current: Snapshot, previous: Snapshot, day: date, previous_day: date
) -> list[MarketEvent]:
    """Events turning ``previous`` (taken on ``previous_day``) into ``current``.

    Both snapshots belong to the same brand; ``day`` is the indexed date of
    ``current``. Order: new vehicles, then removed ones, then price moves.
    Rows are matched by identity; within one snapshot the last duplicate wins.
    """
    now = _by_identity(current.rows)
    before = _by_identity(previous.rows)

    def event(kind: MarketEventType, row: CanonicalVehicleRow, **prices) -> MarketEvent:
        return MarketEvent(
            id=f"{current.brand_id}-{row.identity}-{kind}-{day.isoformat()}",
            type=kind,
            vehicle_id=row.identity,
            brand=row.brand,
            brand_id=current.brand_id,
            model=row.model,
            trim=row.trim,
            engine=row.engine,
            fuel=row.fuel,
            transmission=row.transmission,
            day=day,
            previous_date=previous_day,
            **prices,
        )

    events = [
        event(MarketEventType.NEW, row, new_price=row.price_numeric, new_price_raw=row.price_raw)
        for key, row in now.items()
        if key not in before
    ]
    events.extend(
        event(
            MarketEventType.REMOVED, row,
            old_price=row.price_numeric, old_price_raw=row.price_raw,
        )
        for key, row in before.items()
        if key not in now
    )
    for key, row in now.items():
        old = before.get(key)
        if old is None or old.price_numeric == row.price_numeric:
            continue
        change = row.price_numeric - old.price_numeric
        percent = change / old.price_numeric * 100 if old.price_numeric > 0 else 0.0
        events.append(
            event(
                MarketEventType.PRICE_INCREASE if change > 0 else MarketEventType.PRICE_DECREASE,
                row,
                old_price=old.price_numeric,
                new_price=row.price_numeric,
                old_price_raw=old.price_raw,
                new_price_raw=row.price_raw,
                price_change=change,
                price_change_percent=round(percent, 2),
            )
        )
    return events


def build_market_events(
    events: Iterable[MarketEvent],
    brand_names: Mapping[BrandId, str],
    day: date | None = None,
    previous_day: date | None = None,
    generated_at: datetime | None = None,
) -> MarketEvents:
    """Aggregate per-brand events into summary, volatility and big moves."""
    events = list(events)
    moves = [e for e in events if e.type in PRICE_MOVES]

    by_brand: dict[str, list[MarketEvent]] = defaultdict(list)
    by_model: dict[str, list[MarketEvent]] = defaultdict(list)
    model_names: dict[str, str] = {}
    for e in moves:
        by_brand[e.brand_id].append(e)
        model_key = f"{e.brand_id}-{e.model}"
        by_model[model_key].append(e)
        model_names.setdefault(model_key, f"{e.brand} {e.model}")

    return MarketEvents(
        generated_at=generated_at or datetime.now(timezone.utc),
        day=day,
        previous_date=previous_day,
        summary=summarize_events(events),
        events=events,
        volatility_by_brand=_volatility(
            by_brand, {k: brand_names.get(k, k) for k in by_brand}
        ),
        volatility_by_model=_volatility(by_model, model_names)[:TOP_N],
        top_increases=sorted(
            (e for e in moves if e.type == MarketEventType.PRICE_INCREASE),
            key=lambda e: e.price_change_percent or 0.0,
            reverse=True,
        )[:TOP_N],
        top_decreases=sorted(
            (e for e in moves if e.type == MarketEventType.PRICE_DECREASE),
            key=lambda e: e.price_change_percent or 0.0,
        )[:TOP_N],
    )


def summarize_events(events: list[MarketEvent]) -> MarketEventSummary:
    """Counts per event type and the mean signed price move."""
    counts = {kind: sum(1 for e in events if e.type == kind) for kind in MarketEventType}
    moves = [e for e in events if e.type in PRICE_MOVES]
    return MarketEventSummary(
        total_events=len(events),
        new_vehicles=counts[MarketEventType.NEW],
        removed_vehicles=counts[MarketEventType.REMOVED],
        price_increases=counts[MarketEventType.PRICE_INCREASE],
        price_decreases=counts[MarketEventType.PRICE_DECREASE],
        avg_price_change=(
            round(sum(e.price_change or 0.0 for e in moves) / len(moves)) if moves else 0.0
        ),
        avg_price_change_percent=(
            round(sum(e.price_change_percent or 0.0 for e in moves) / len(moves), 2)
            if moves
            else 0.0
        ),
    )


def _volatility(
    groups: Mapping[str, list[MarketEvent]], names: Mapping[str, str]
) -> list[VolatilityMetric]:
    # Absolute moves; most frequently changing first.
    metrics = [
        VolatilityMetric(
            id=key,
            name=names[key],
            change_count=len(moves),
            avg_change=round(sum(abs(e.price_change or 0.0) for e in moves) / len(moves)),
            avg_change_percent=round(
                sum(abs(e.price_change_percent or 0.0) for e in moves) / len(moves), 2
            ),
            increase_count=sum(1 for e in moves if e.type == MarketEventType.PRICE_INCREASE),
            decrease_count=sum(1 for e in moves if e.type == MarketEventType.PRICE_DECREASE),
        )
        for key, moves in groups.items()
    ]
    return sorted(metrics, key=lambda m: m.change_count, reverse=True)


def _by_identity(
    rows: Iterable[CanonicalVehicleRow],
) -> dict[VehicleIdentity, CanonicalVehicleRow]:
    return {row.identity: row for row in rows}
