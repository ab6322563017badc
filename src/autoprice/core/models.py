"""Pydantic data models — the system's type contracts.

Field names are snake_case in Python and camelCase on the wire: every model
shares ``_WIRE_CONFIG`` so snapshot, index and report documents keep the
key names the published dataset has always used.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from autoprice.normalize.fuel import FuelKind, classify
from autoprice.normalize.identity import identity
from autoprice.normalize.price import parse_price

# --- Type Aliases ---

BrandId = str
VehicleIdentity = str
RawPayload = dict[str, Any] | list[Any]

# Half a kuruş: the largest gap allowed between priceRaw and priceNumeric.
PRICE_TOLERANCE = 0.005

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)

# --- Enumerations ---


class SourceKind(StrEnum):
    """Built-in source adapters, one per upstream feed shape."""

    VOLKSWAGEN = "volkswagen"
    SKODA = "skoda"
    RENAULT = "renault"
    TOYOTA = "toyota"
    HYUNDAI = "hyundai"
    FORD = "ford"


class ResponseType(StrEnum):
    """How a source's HTTP body is decoded."""

    JSON = "json"
    XML = "xml"


class ErrorKind(StrEnum):
    """Stage at which a source failed during a collection run."""

    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    SCHEMA = "schema"
    EMPTY = "empty"
    STORAGE = "storage"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"


class TrendDirection(StrEnum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


# --- Row Models ---


class CanonicalVehicleRow(BaseModel):
    """One priced vehicle variant, normalized across sources.

    The core fields are always present. Extended attributes are optional and
    the set is open: adapters may attach further keys, which are kept and
    serialized verbatim.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        protected_namespaces=(),
    )

    model: str
    trim: str = ""
    engine: str = ""
    transmission: str = ""
    fuel: FuelKind = FuelKind.UNKNOWN
    price_raw: str
    price_numeric: float
    brand: str

    # Extended attributes
    model_year: int | str | None = None
    net_price: float | None = None
    otv_rate: str | None = None
    otv_amount: float | None = None
    kdv_amount: float | None = None
    mtv_amount: float | None = None
    notary_fee: float | None = None
    traffic_registration_fee: float | None = None
    origin: str | None = None
    power_hp: int | None = Field(default=None, alias="powerHP")
    power_kw: int | None = Field(default=None, alias="powerKW")
    drive_type: str | None = None
    fuel_consumption: str | None = None
    price_list_numeric: float | None = None
    price_campaign_numeric: float | None = None
    otv_incentive_price: float | None = None

    @field_validator("model")
    @classmethod
    def model_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("model must not be empty")
        return v

    @field_validator("trim", "engine", "transmission", "brand")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("fuel", mode="before")
    @classmethod
    def coerce_fuel(cls, v: Any) -> Any:
        """Accept canonical values as-is and classify free-text labels."""
        if isinstance(v, FuelKind):
            return v
        if v is None:
            return FuelKind.UNKNOWN
        try:
            return FuelKind(v)
        except ValueError:
            return classify(str(v))

    @field_validator("price_numeric")
    @classmethod
    def price_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError(f"priceNumeric must be > 0, got {v}")
        return v

    @model_validator(mode="after")
    def raw_matches_numeric(self) -> CanonicalVehicleRow:
        parsed = parse_price(self.price_raw)
        if abs(parsed - self.price_numeric) > PRICE_TOLERANCE:
            raise ValueError(
                f"priceRaw {self.price_raw!r} ({parsed}) does not match "
                f"priceNumeric {self.price_numeric}"
            )
        return self

    @property
    def identity(self) -> VehicleIdentity:
        """Correlation key of this row across snapshots."""
        return identity(self.brand, self.model, self.trim, self.engine)


def row_identity(row: CanonicalVehicleRow) -> VehicleIdentity:
    """Identity of a canonical row; same as ``row.identity``."""
    return row.identity


# --- Snapshot & Index Models ---


class Snapshot(BaseModel):
    """All rows of one brand on one day. Immutable once committed."""

    model_config = _WIRE_CONFIG

    collected_at: datetime
    brand: str
    brand_id: BrandId
    row_count: int
    rows: list[CanonicalVehicleRow]

    @model_validator(mode="after")
    def row_count_matches(self) -> Snapshot:
        if self.row_count != len(self.rows):
            raise ValueError(
                f"rowCount ({self.row_count}) != len(rows) ({len(self.rows)})"
            )
        return self

    def find(self, vehicle_id: VehicleIdentity) -> CanonicalVehicleRow | None:
        """Return the first row with the given identity, or None."""
        for row in self.rows:
            if row.identity == vehicle_id:
                return row
        return None


class BrandIndexEntry(BaseModel):
    """Availability of one brand's snapshots.

    ``availableDates`` is kept ascending (oldest first) and duplicate-free,
    whatever order it was written in; ``latestDate`` is always its last
    element. Older index files listing dates newest first load unchanged
    in meaning but are re-sorted on the next write.
    """

    model_config = _WIRE_CONFIG

    name: str
    available_dates: list[date] = []
    latest_date: date | None = None
    total_records: int = 0

    @field_validator("available_dates")
    @classmethod
    def dates_sorted_unique(cls, v: list[date]) -> list[date]:
        return sorted(set(v))

    @model_validator(mode="after")
    def latest_is_max(self) -> BrandIndexEntry:
        expected = self.available_dates[-1] if self.available_dates else None
        if self.latest_date != expected:
            raise ValueError(
                f"latestDate ({self.latest_date}) must equal the newest "
                f"available date ({expected})"
            )
        return self

    def with_date(
        self, day: date, total_records: int, name: str | None = None
    ) -> BrandIndexEntry:
        """Return a new entry with ``day`` recorded."""
        dates = sorted(set(self.available_dates) | {day})
        return BrandIndexEntry(
            name=name or self.name,
            available_dates=dates,
            latest_date=dates[-1],
            total_records=total_records,
        )


class Index(BaseModel):
    """Top-level availability index: which brand has data for which day."""

    model_config = _WIRE_CONFIG

    last_updated: datetime | None = None
    brands: dict[BrandId, BrandIndexEntry] = {}

    def get(self, brand_id: BrandId) -> BrandIndexEntry | None:
        return self.brands.get(brand_id)

    def resolve_brand_id(self, brand: str) -> BrandId | None:
        """Map a brand id or display name (case-insensitive) to its id."""
        if brand in self.brands:
            return brand
        wanted = brand.strip().lower()
        for brand_id, entry in self.brands.items():
            if brand_id.lower() == wanted or entry.name.lower() == wanted:
                return brand_id
        return None


# --- Tracking & Trend Models ---


class TrackedVehicle(BaseModel):
    """A vehicle the user watches for price changes."""

    model_config = _WIRE_CONFIG

    id: VehicleIdentity = ""
    brand: str
    brand_id: BrandId | None = None
    model: str
    trim: str = ""
    engine: str = ""
    last_price: float
    last_price_raw: str = ""
    last_check_date: date | datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def fill_identity(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            data = dict(data)
            data["id"] = identity(
                data.get("brand"),
                data.get("model"),
                data.get("trim"),
                data.get("engine"),
            )
        return data


class PriceChangeEvent(BaseModel):
    """A tracked vehicle's price differs from the latest snapshot."""

    model_config = _WIRE_CONFIG

    vehicle: TrackedVehicle
    old_price: float
    new_price: float
    old_price_raw: str
    new_price_raw: str
    diff: float
    diff_percent: float


class PricePoint(BaseModel):
    """Price of one vehicle on one day."""

    model_config = _WIRE_CONFIG

    day: date = Field(alias="date")
    price: float


class TrendSummary(BaseModel):
    """First-to-last movement over a price series."""

    model_config = _WIRE_CONFIG

    identity: VehicleIdentity
    points: list[PricePoint]
    first_price: float | None = None
    last_price: float | None = None
    change: float = 0.0
    change_percent: float = 0.0
    direction: TrendDirection = TrendDirection.FLAT


# --- Market Event Models ---


class MarketEventType(StrEnum):
    """What happened to a vehicle between a brand's two newest snapshots."""

    NEW = "new"
    REMOVED = "removed"
    PRICE_INCREASE = "price_increase"
    PRICE_DECREASE = "price_decrease"


class MarketEvent(BaseModel):
    """One listing change between consecutive snapshots of a brand.

    ``new`` events carry only the new price, ``removed`` only the old one.
    """

    model_config = _WIRE_CONFIG

    id: str
    type: MarketEventType
    vehicle_id: VehicleIdentity
    brand: str
    brand_id: BrandId
    model: str
    trim: str = ""
    engine: str = ""
    fuel: FuelKind = FuelKind.UNKNOWN
    transmission: str = ""
    old_price: float | None = None
    new_price: float | None = None
    old_price_raw: str | None = None
    new_price_raw: str | None = None
    price_change: float | None = None
    price_change_percent: float | None = None
    day: date = Field(alias="date")
    previous_date: date | None = None


class VolatilityMetric(BaseModel):
    """How often and how far prices moved within a brand or model."""

    model_config = _WIRE_CONFIG

    id: str
    name: str
    change_count: int
    avg_change: float
    avg_change_percent: float
    increase_count: int
    decrease_count: int


class MarketEventSummary(BaseModel):
    model_config = _WIRE_CONFIG

    total_events: int = 0
    new_vehicles: int = 0
    removed_vehicles: int = 0
    price_increases: int = 0
    price_decreases: int = 0
    avg_price_change: float = 0.0
    avg_price_change_percent: float = 0.0


class MarketEvents(BaseModel):
    """Market-wide changes between each brand's two newest snapshots."""

    model_config = _WIRE_CONFIG

    generated_at: datetime
    day: date | None = Field(default=None, alias="date")
    previous_date: date | None = None
    summary: MarketEventSummary = MarketEventSummary()
    events: list[MarketEvent] = []
    volatility_by_brand: list[VolatilityMetric] = []
    volatility_by_model: list[VolatilityMetric] = []
    top_increases: list[MarketEvent] = []
    top_decreases: list[MarketEvent] = []


# --- Run Report Models ---


class SourceResult(BaseModel):
    """Outcome of one source in one collection run."""

    model_config = _WIRE_CONFIG

    brand_id: BrandId
    brand_name: str
    success: bool
    count: int = 0
    error: str | None = None
    error_kind: ErrorKind | None = None
    indexed: bool = False


class RunReport(BaseModel):
    """Health report of a collection run."""

    model_config = _WIRE_CONFIG

    generated_at: datetime
    run_date: date = Field(alias="date")
    total_brands: int
    successful: int
    failed: int
    details: list[SourceResult]

    @property
    def failures(self) -> list[SourceResult]:
        return [r for r in self.details if not r.success]
