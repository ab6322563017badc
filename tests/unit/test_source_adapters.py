"""Tests for the per-manufacturer price list adapters."""

import xmltodict

from autoprice.normalize import FuelKind
from autoprice.sources import (
    FordParser,
    HyundaiParser,
    RenaultParser,
    SkodaParser,
    ToyotaParser,
    VolkswagenParser,
)
from autoprice.sources.hyundai import strip_trim
from autoprice.sources.skoda import split_hardware
from autoprice.sources.toyota import is_informational


def _by_trim(rows):
    return {row.trim: row for row in rows}


# --- Volkswagen ---


class TestVolkswagen:
    def test_rows(self, volkswagen_payload):
        rows = VolkswagenParser().parse(volkswagen_payload, "Volkswagen")
        assert [(r.model, r.trim) for r in rows] == [
            ("Golf", "Life"),
            ("Golf", "Style"),
            ("ID.4", "Pro"),
        ]

    def test_turnkey_price_not_notary_price(self, volkswagen_payload):
        life = _by_trim(VolkswagenParser().parse(volkswagen_payload, "Volkswagen"))["Life"]
        assert life.price_raw == "1.750.000"
        assert life.price_numeric == 1_750_000

    def test_decimal_price(self, volkswagen_payload):
        style = _by_trim(VolkswagenParser().parse(volkswagen_payload, "Volkswagen"))["Style"]
        assert style.price_raw == "2.100.000,50"
        assert style.price_numeric == 2_100_000.5

    def test_labelled_fields(self, volkswagen_payload):
        life = _by_trim(VolkswagenParser().parse(volkswagen_payload, "Volkswagen"))["Life"]
        assert life.engine == "1.5 eTSI 150 PS"
        assert life.transmission == "DSG"
        assert life.model_year == 2024
        assert life.otv_rate == "%80"
        assert life.otv_amount is None
        assert life.notary_fee is None
        assert life.power_hp == 150
        assert life.brand == "Volkswagen"

    def test_fuel(self, volkswagen_payload):
        rows = _by_trim(VolkswagenParser().parse(volkswagen_payload, "Volkswagen"))
        assert rows["Life"].fuel == FuelKind.MILD_HYBRID
        assert rows["Style"].fuel == FuelKind.DIESEL
        assert rows["Pro"].fuel == FuelKind.ELECTRIC

    def test_single_item_object(self, volkswagen_payload):
        rows = VolkswagenParser().parse(volkswagen_payload, "Volkswagen")
        assert rows[-1].identity == "volkswagen-id.4-pro-77-kwh-286-ps"

    def test_wrong_shape(self):
        assert VolkswagenParser().parse({"Data": {}}, "Volkswagen") == []
        assert VolkswagenParser().parse([], "Volkswagen") == []


# --- Škoda ---


class TestSkoda:
    def test_rows(self, skoda_payload):
        rows = SkodaParser().parse(skoda_payload, "Škoda")
        assert [r.model for r in rows] == ["Octavia", "Enyaq"]

    def test_hardware_split(self, skoda_payload):
        octavia = SkodaParser().parse(skoda_payload, "Škoda")[0]
        assert octavia.trim == "Premium 1.5 TSI 150 PS DSG"
        assert octavia.engine == "Premium 1.5 TSI 150 PS"
        assert octavia.transmission == "DSG"
        assert octavia.fuel == FuelKind.PETROL
        assert octavia.price_raw == "1.650.000"
        assert octavia.price_list_numeric == 1_700_000
        assert octavia.power_hp == 150

    def test_numeric_price_rendered(self, skoda_payload):
        enyaq = SkodaParser().parse(skoda_payload, "Škoda")[1]
        assert enyaq.price_raw == "₺2.500.000,00"
        assert enyaq.price_numeric == 2_500_000
        assert enyaq.fuel == FuelKind.ELECTRIC
        assert enyaq.transmission == ""

    def test_tabs_layout(self, skoda_payload):
        sections = skoda_payload["pageProps"]["priceListSections"]
        payload = {
            "pageProps": {
                "tabs": [{"content": {"priceListData": {"priceListSections": sections}}}]
            }
        }
        assert len(SkodaParser().parse(payload, "Škoda")) == 2

    def test_wrong_shape(self):
        assert SkodaParser().parse({"pageProps": {}}, "Škoda") == []

    def test_split_hardware(self):
        assert split_hardware("1.0 TSI 115 PS Manuel") == ("1.0 TSI 115 PS", "Manuel")
        assert split_hardware("Elite 1.5 TSI dsg 150 PS") == ("Elite 1.5 TSI 150 PS", "DSG")
        assert split_hardware("iV 80") == ("iV 80", "")


# --- Renault ---


class TestRenault:
    def test_unparsable_price_drops_only_that_row(self, renault_payload):
        rows = RenaultParser().parse(renault_payload, "Renault")
        assert [r.model for r in rows] == ["Clio", "Austral"]

    def test_fields(self, renault_payload):
        clio = RenaultParser().parse(renault_payload, "Renault")[0]
        assert clio.price_raw == "₺1.250.000,00"
        assert clio.price_numeric == 1_250_000
        assert clio.trim == "Evolution"
        assert clio.engine == "1.0 TCe 90"
        assert clio.transmission == "Manuel"
        assert clio.fuel == FuelKind.PETROL
        assert clio.net_price == 800_000.5
        assert clio.otv_rate == "%60"
        assert clio.model_year == 2024

    def test_trim_falls_back_to_version(self, renault_payload):
        austral = RenaultParser().parse(renault_payload, "Renault")[1]
        assert austral.trim == "E-Tech full hybrid 200"
        assert austral.price_numeric == 2_100_000
        assert austral.net_price is None
        assert austral.fuel == FuelKind.HYBRID

    def test_wrong_shape(self):
        assert RenaultParser().parse({"result": []}, "Renault") == []


# --- Toyota ---


class TestToyota:
    def test_active_priced_rows_only(self, toyota_payload):
        rows = ToyotaParser().parse(toyota_payload, "Toyota")
        assert [(r.model, r.trim) for r in rows] == [
            ("Corolla", "Dream"),
            ("C-HR", "Passion X"),
        ]

    def test_list_price_with_unit(self, toyota_payload):
        corolla = ToyotaParser().parse(toyota_payload, "Toyota")[0]
        assert corolla.price_numeric == 850_000
        assert corolla.price_raw == "850.000"
        assert corolla.engine == "1.5"
        assert corolla.transmission == "Multidrive S"
        assert corolla.fuel == FuelKind.PETROL
        assert corolla.price_list_numeric == 850_000
        assert corolla.price_campaign_numeric is None

    def test_campaign_price_preferred(self, toyota_payload):
        chr_ = ToyotaParser().parse(toyota_payload, "Toyota")[1]
        assert chr_.price_numeric == 1_450_000
        assert chr_.price_list_numeric == 1_500_000
        assert chr_.price_campaign_numeric == 1_450_000
        assert chr_.fuel == FuelKind.HYBRID

    def test_decoded_xml(self, toyota_xml):
        payload = xmltodict.parse(toyota_xml, attr_prefix="")
        rows = ToyotaParser().parse(payload, "Toyota")
        assert len(rows) == 1
        assert rows[0].price_numeric == 850_000
        assert rows[0].price_raw == "850.000"

    def test_overflowing_year_keeps_row(self, toyota_payload):
        toyota_payload["Data"]["Model"][1]["ModelFiyat"]["ModelYili"] = "1e999"
        rows = ToyotaParser().parse(toyota_payload, "Toyota")
        assert [r.model for r in rows] == ["Corolla", "C-HR"]
        assert rows[1].model_year is None

    def test_missing_models(self):
        assert ToyotaParser().parse({"Data": {}}, "Toyota") == []

    def test_informational_names(self):
        assert is_informational("%80 ÖTV oranına tabidir")
        assert is_informational("Tüm versiyonlarda geçerlidir")
        assert not is_informational("Passion X")


# --- Hyundai ---


class TestHyundai:
    def test_suggested_price_preferred(self, hyundai_payload):
        jump, style = HyundaiParser().parse(hyundai_payload, "Hyundai")
        assert jump.price_numeric == 1_250_000
        assert jump.price_list_numeric == 1_300_000
        assert style.price_numeric == 1_400_000
        assert style.price_list_numeric is None

    def test_engine_without_trim(self, hyundai_payload):
        jump, style = HyundaiParser().parse(hyundai_payload, "Hyundai")
        assert jump.engine == "1.4 MPI 100 PS"
        assert style.engine == "1.0 T-GDI"
        assert jump.power_hp == 100
        assert jump.model_year == 2024
        assert jump.fuel == FuelKind.PETROL

    def test_wrong_shape(self):
        assert HyundaiParser().parse({"products": []}, "Hyundai") == []

    def test_strip_trim(self):
        assert strip_trim("1.6 CRDi Elite Smart", "Elite") == "1.6 CRDi Smart"
        assert strip_trim("1.6 CRDi", "") == "1.6 CRDi"


# --- Ford ---


class TestFord:
    def test_campaign_price_preferred(self, ford_payload):
        titanium, st_line = FordParser().parse(ford_payload, "Ford")
        assert titanium.price_numeric == 1_650_000
        assert titanium.price_list_numeric == 1_700_000
        assert st_line.price_numeric == 1_800_000
        assert st_line.price_list_numeric is None

    def test_fields(self, ford_payload):
        titanium, st_line = FordParser().parse(ford_payload, "Ford")
        assert titanium.power_hp == 125
        assert titanium.drive_type == "4x2"
        assert titanium.fuel == FuelKind.MILD_HYBRID
        assert st_line.drive_type is None
        assert st_line.fuel == FuelKind.PETROL

    def test_infinite_horsepower_ignored(self, ford_payload):
        ford_payload["carPriceList"][0]["entities"][0]["horsePower"] = "inf"
        titanium, st_line = FordParser().parse(ford_payload, "Ford")
        assert titanium.power_hp is None
        assert titanium.price_numeric == 1_650_000
        assert st_line.price_numeric == 1_800_000

    def test_wrong_shape(self):
        assert FordParser().parse({"carPriceList": None}, "Ford") == []
