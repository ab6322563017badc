"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from autoprice.core.models import (
    PriceChangeEvent,
    PricePoint,
    Snapshot,
    TrackedVehicle,
    TrendSummary,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str
    detail: str | None = None


# -- Health --


class HealthResponse(_CamelModel):
    status: str
    version: str
    brands: int
    last_updated: datetime | None = None
    last_run: date | None = None
    last_run_failed: int | None = None


# -- Snapshots --


class LatestResponse(_CamelModel):
    """Latest snapshot of every indexed brand."""

    snapshots: list[Snapshot]


# -- Trends --


class TrendResponse(_CamelModel):
    brand_id: str
    identity: str
    points: list[PricePoint]
    summary: TrendSummary


# -- Changes --


class ChangesRequest(_CamelModel):
    tracked: list[TrackedVehicle]


class ChangesResponse(_CamelModel):
    checked: int
    changes: list[PriceChangeEvent]
