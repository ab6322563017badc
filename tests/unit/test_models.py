"""Tests for autoprice.core.models."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from autoprice.core.models import (
    BrandIndexEntry,
    CanonicalVehicleRow,
    ErrorKind,
    Index,
    PricePoint,
    RunReport,
    Snapshot,
    SourceResult,
    TrackedVehicle,
    row_identity,
)
from autoprice.normalize import FuelKind


def _row(**overrides) -> CanonicalVehicleRow:
    fields = dict(
        model="Golf",
        trim="Life",
        engine="1.5 eTSI 150 PS",
        transmission="DSG",
        fuel=FuelKind.MILD_HYBRID,
        price_raw="1.750.000",
        price_numeric=1_750_000,
        brand="Volkswagen",
    )
    fields.update(overrides)
    return CanonicalVehicleRow(**fields)


class TestCanonicalVehicleRow:
    def test_valid_row(self):
        row = _row()
        assert row.price_numeric == 1_750_000
        assert row.fuel == FuelKind.MILD_HYBRID

    def test_frozen(self):
        row = _row()
        with pytest.raises(ValidationError):
            row.price_numeric = 1.0

    def test_rejects_zero_price(self):
        with pytest.raises(ValidationError, match="priceNumeric must be > 0"):
            _row(price_raw="0", price_numeric=0)

    def test_rejects_raw_numeric_mismatch(self):
        with pytest.raises(ValidationError, match="does not match"):
            _row(price_raw="1.750.000", price_numeric=1_700_000)

    def test_allows_half_kurus_gap(self):
        row = _row(price_raw="1.750.000,00", price_numeric=1_750_000.004)
        assert row.price_numeric == pytest.approx(1_750_000.004)

    def test_rejects_empty_model(self):
        with pytest.raises(ValidationError, match="model must not be empty"):
            _row(model="   ")

    def test_strips_text_fields(self):
        row = _row(model=" Golf ", trim=" Life ", brand=" Volkswagen ")
        assert (row.model, row.trim, row.brand) == ("Golf", "Life", "Volkswagen")

    def test_fuel_label_is_classified(self):
        assert _row(fuel="Dizel").fuel == FuelKind.DIESEL

    def test_fuel_canonical_value_kept(self):
        assert _row(fuel="Plug-in Hybrid").fuel == FuelKind.PLUG_IN_HYBRID

    def test_fuel_none_is_unknown(self):
        assert _row(fuel=None).fuel == FuelKind.UNKNOWN

    def test_camel_case_wire_names(self):
        dumped = _row(power_hp=150, model_year=2024).model_dump(
            by_alias=True, exclude_none=True
        )
        assert dumped["priceRaw"] == "1.750.000"
        assert dumped["priceNumeric"] == 1_750_000
        assert dumped["powerHP"] == 150
        assert dumped["modelYear"] == 2024
        assert "netPrice" not in dumped

    def test_accepts_wire_names(self):
        row = CanonicalVehicleRow.model_validate(
            {
                "model": "Clio",
                "priceRaw": "₺1.250.000,00",
                "priceNumeric": 1_250_000,
                "brand": "Renault",
                "powerKW": 66,
            }
        )
        assert row.power_kw == 66
        assert row.trim == ""

    def test_extra_attributes_kept(self):
        row = _row(colorOptions="3")
        assert row.model_dump(by_alias=True)["colorOptions"] == "3"

    def test_identity(self):
        row = _row()
        assert row.identity == "volkswagen-golf-life-1.5-etsi-150-ps"
        assert row_identity(row) == row.identity


class TestSnapshot:
    def test_row_count_must_match(self):
        with pytest.raises(ValidationError, match="rowCount"):
            Snapshot(
                collected_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
                brand="Volkswagen",
                brand_id="volkswagen",
                row_count=2,
                rows=[_row()],
            )

    def test_find(self):
        golf = _row()
        polo = _row(model="Polo", trim="Impression", engine="1.0 TSI")
        snapshot = Snapshot(
            collected_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            brand="Volkswagen",
            brand_id="volkswagen",
            row_count=2,
            rows=[golf, polo],
        )
        assert snapshot.find(polo.identity) == polo
        assert snapshot.find("volkswagen-arteon-base-standard") is None


class TestBrandIndexEntry:
    def test_dates_sorted_and_deduplicated(self):
        entry = BrandIndexEntry(
            name="Toyota",
            available_dates=[date(2024, 5, 3), date(2024, 5, 1), date(2024, 5, 3)],
            latest_date=date(2024, 5, 3),
        )
        assert entry.available_dates == [date(2024, 5, 1), date(2024, 5, 3)]

    def test_newest_first_document_loads_ascending(self):
        entry = BrandIndexEntry.model_validate(
            {
                "name": "Toyota",
                "availableDates": ["2024-05-03", "2024-05-02", "2024-05-01"],
                "latestDate": "2024-05-03",
                "totalRecords": 4,
            }
        )
        assert entry.available_dates[0] == date(2024, 5, 1)
        assert entry.available_dates[-1] == entry.latest_date
        dumped = entry.model_dump(mode="json", by_alias=True)
        assert dumped["availableDates"] == ["2024-05-01", "2024-05-02", "2024-05-03"]

    def test_latest_must_be_newest(self):
        with pytest.raises(ValidationError, match="latestDate"):
            BrandIndexEntry(
                name="Toyota",
                available_dates=[date(2024, 5, 1), date(2024, 5, 2)],
                latest_date=date(2024, 5, 1),
            )

    def test_empty_entry(self):
        entry = BrandIndexEntry(name="Toyota")
        assert entry.latest_date is None

    def test_with_date_adds_and_keeps_order(self):
        entry = BrandIndexEntry(name="Toyota").with_date(date(2024, 5, 2), 10)
        entry = entry.with_date(date(2024, 5, 1), 12)
        assert entry.available_dates == [date(2024, 5, 1), date(2024, 5, 2)]
        assert entry.latest_date == date(2024, 5, 2)
        assert entry.total_records == 12

    def test_with_date_is_idempotent(self):
        entry = BrandIndexEntry(name="Toyota").with_date(date(2024, 5, 1), 10)
        again = entry.with_date(date(2024, 5, 1), 10)
        assert again.available_dates == [date(2024, 5, 1)]


class TestIndex:
    @pytest.fixture
    def index(self) -> Index:
        return Index(
            brands={
                "skoda": BrandIndexEntry(name="Škoda"),
                "volkswagen": BrandIndexEntry(name="Volkswagen"),
            }
        )

    def test_resolve_by_id(self, index):
        assert index.resolve_brand_id("skoda") == "skoda"

    def test_resolve_by_name_case_insensitive(self, index):
        assert index.resolve_brand_id("škoda") == "skoda"
        assert index.resolve_brand_id("VOLKSWAGEN") == "volkswagen"

    def test_resolve_unknown(self, index):
        assert index.resolve_brand_id("opel") is None

    def test_wire_names(self, index):
        dumped = index.model_dump(mode="json", by_alias=True)
        assert "lastUpdated" in dumped
        assert dumped["brands"]["skoda"]["availableDates"] == []


class TestTrackedVehicle:
    def test_identity_filled_from_parts(self):
        tracked = TrackedVehicle(
            brand="Volkswagen", model="Golf", trim="Life",
            engine="1.5 eTSI 150 PS", last_price=1_000_000,
        )
        assert tracked.id == "volkswagen-golf-life-1.5-etsi-150-ps"

    def test_explicit_id_kept(self):
        tracked = TrackedVehicle.model_validate(
            {"id": "custom-id", "brand": "VW", "model": "Golf", "lastPrice": 1}
        )
        assert tracked.id == "custom-id"


class TestPricePoint:
    def test_date_alias(self):
        point = PricePoint.model_validate({"date": "2024-05-01", "price": 950000})
        assert point.day == date(2024, 5, 1)
        assert point.model_dump(mode="json", by_alias=True) == {
            "date": "2024-05-01",
            "price": 950000.0,
        }


class TestRunReport:
    def test_failures_and_date_alias(self):
        report = RunReport(
            generated_at=datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc),
            run_date=date(2024, 5, 1),
            total_brands=2,
            successful=1,
            failed=1,
            details=[
                SourceResult(brand_id="volkswagen", brand_name="Volkswagen", success=True, count=10, indexed=True),
                SourceResult(
                    brand_id="toyota", brand_name="Toyota", success=False,
                    error="HTTP 503", error_kind=ErrorKind.NETWORK,
                ),
            ],
        )
        assert [r.brand_id for r in report.failures] == ["toyota"]
        dumped = report.model_dump(mode="json", by_alias=True)
        assert dumped["date"] == "2024-05-01"
        assert dumped["details"][1]["errorKind"] == "network"
