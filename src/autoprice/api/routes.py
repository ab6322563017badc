"""FastAPI route definitions for the autoprice read API.

Endpoints are plain ``def`` functions: storage reads are blocking file I/O,
which FastAPI runs in its worker thread pool.
"""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query

import autoprice
from autoprice.api.deps import get_index, get_snapshots, get_trends
from autoprice.api.schemas import (
    ChangesRequest,
    ChangesResponse,
    ErrorResponse,
    HealthResponse,
    LatestResponse,
    TrendResponse,
)
from autoprice.core.models import BrandId, Index, MarketEvents, Snapshot
from autoprice.normalize.identity import identity
from autoprice.storage import IndexMaintainer, SnapshotStore
from autoprice.trends import TrendEngine

router = APIRouter()

NO_DATA = "no data available"

UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Invalid or missing API key"}}
NOT_FOUND = {404: {"model": ErrorResponse, "description": "Brand or date not indexed"}}


def _resolve_brand(index: Index, brand: str) -> BrandId:
    brand_id = index.resolve_brand_id(brand)
    if brand_id is None:
        raise HTTPException(status_code=404, detail=NO_DATA)
    return brand_id


def _read_or_404(snapshots: SnapshotStore, brand_id: BrandId, day: date | None) -> Snapshot:
    snapshot = snapshots.read(brand_id, day) if day is not None else None
    if snapshot is None:
        raise HTTPException(status_code=404, detail=NO_DATA)
    return snapshot


# -- Health --


@router.get("/health", response_model=HealthResponse)
def health_check(index: IndexMaintainer = Depends(get_index)):
    """Service liveness plus dataset freshness."""
    current = index.load()
    report = index.load_report()
    return HealthResponse(
        status="ok",
        version=autoprice.__version__,
        brands=len(current.brands),
        last_updated=current.last_updated,
        last_run=report.run_date if report else None,
        last_run_failed=report.failed if report else None,
    )


# -- Index & Snapshots --


@router.get("/index", response_model=Index, responses=UNAUTHORIZED)
def get_index_document(index: IndexMaintainer = Depends(get_index)):
    """The availability index: brands and their snapshot dates."""
    return index.load()


@router.get(
    "/latest",
    response_model=Snapshot | LatestResponse,
    response_model_exclude_none=True,
    responses={**UNAUTHORIZED, **NOT_FOUND},
)
def latest(
    brand: str | None = Query(None, description="Brand id or name; all brands if omitted"),
    index: IndexMaintainer = Depends(get_index),
    snapshots: SnapshotStore = Depends(get_snapshots),
):
    """Latest snapshot of one brand, or of every indexed brand."""
    current = index.load()
    if brand is not None:
        brand_id = _resolve_brand(current, brand)
        return _read_or_404(snapshots, brand_id, current.brands[brand_id].latest_date)

    found = []
    for brand_id, entry in sorted(current.brands.items()):
        if entry.latest_date is None:
            continue
        snapshot = snapshots.read(brand_id, entry.latest_date)
        if snapshot is not None:
            found.append(snapshot)
    return LatestResponse(snapshots=found)


@router.get(
    "/vehicles",
    response_model=Snapshot,
    response_model_exclude_none=True,
    responses={**UNAUTHORIZED, **NOT_FOUND},
)
def vehicles(
    brand: str = Query(..., description="Brand id or name"),
    day: date | None = Query(None, alias="date", description="YYYY-MM-DD; latest if omitted"),
    index: IndexMaintainer = Depends(get_index),
    snapshots: SnapshotStore = Depends(get_snapshots),
):
    """All rows of one brand on one date."""
    current = index.load()
    brand_id = _resolve_brand(current, brand)
    entry = current.brands[brand_id]
    if day is None:
        day = entry.latest_date
    elif day not in entry.available_dates:
        raise HTTPException(status_code=404, detail=NO_DATA)
    return _read_or_404(snapshots, brand_id, day)


# -- Trends --


@router.get("/trend", response_model=TrendResponse, responses={**UNAUTHORIZED, **NOT_FOUND})
def trend(
    brand: str = Query(...),
    model: str = Query(...),
    trim: str = Query(""),
    engine: str = Query(""),
    days: int | None = Query(None, ge=1, le=3650, description="Look-back window in days"),
    index: IndexMaintainer = Depends(get_index),
    trends: TrendEngine = Depends(get_trends),
):
    """Price history of one vehicle, oldest first."""
    current = index.load()
    brand_id = _resolve_brand(current, brand)
    vehicle_id = identity(current.brands[brand_id].name, model, trim, engine)

    from_date = date.today() - timedelta(days=days) if days else None
    points = trends.series(brand_id, vehicle_id, from_date=from_date)
    return TrendResponse(
        brand_id=brand_id,
        identity=vehicle_id,
        points=points,
        summary=trends.summarize(vehicle_id, points),
    )


# -- Market Events --


@router.get("/events", response_model=MarketEvents, responses={**UNAUTHORIZED, **NOT_FOUND})
def events(
    brand: str | None = Query(None, description="Brand id or name; all brands if omitted"),
    index: IndexMaintainer = Depends(get_index),
    trends: TrendEngine = Depends(get_trends),
):
    """New, removed and repriced vehicles between each brand's two newest snapshots."""
    brand_id = _resolve_brand(index.load(), brand) if brand is not None else None
    return trends.market_events(brand_id)


# -- Changes --


@router.post("/changes", response_model=ChangesResponse, responses=UNAUTHORIZED)
def changes(
    body: ChangesRequest,
    trends: TrendEngine = Depends(get_trends),
):
    """Price changes of tracked vehicles against each brand's latest snapshot."""
    return ChangesResponse(
        checked=len(body.tracked),
        changes=trends.detect_changes(body.tracked),
    )
