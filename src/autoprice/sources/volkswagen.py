"""Volkswagen price list adapter.

Payload shape::

    Data.FiyatBilgisi.Arac[]
        .AracXML.PriceData
            "-ModelName": "Golf"
            SubList.Item: {...} | [{...}, ...]       # one item per variant
                SubItem: [{"-Title": "Donanım", "-Value": "Life"}, ...]

Each variant is a list of labelled title/value pairs. Labels are Turkish and
not entirely stable, so the price is found by substring match.
"""

from __future__ import annotations

from typing import Any, Iterator

from autoprice.core.models import CanonicalVehicleRow, RawPayload, SourceKind
from autoprice.normalize.fuel import classify
from autoprice.sources.base import (
    BaseSourceParser,
    as_list,
    dig,
    expect_list,
    labeled_value,
    make_row,
    power_hp,
    to_amount,
    to_int,
    to_price,
)


class VolkswagenParser(BaseSourceParser):
    kind = SourceKind.VOLKSWAGEN

    def _variants(self, payload: RawPayload) -> Iterator[tuple[str, list[Any]]]:
        vehicles = expect_list(
            dig(payload, "Data", "FiyatBilgisi", "Arac"),
            "Data.FiyatBilgisi.Arac",
            self.kind,
        )
        for vehicle in vehicles:
            price_data = dig(vehicle, "AracXML", "PriceData")
            if not isinstance(price_data, dict):
                continue
            model_name = str(price_data.get("-ModelName") or "")
            for item in as_list(dig(price_data, "SubList", "Item")):
                if isinstance(item, dict):
                    yield model_name, as_list(item.get("SubItem"))

    def _to_row(
        self, variant: tuple[str, list[Any]], brand_name: str
    ) -> CanonicalVehicleRow | None:
        model_name, pairs = variant
        price = to_price(
            labeled_value(pairs, ("Fiyat", "Anahtar Teslim"), exclude=("Noter",)),
            field="Anahtar Teslim Fiyat",
        )
        if price is None:
            return None
        price_raw, price_numeric = price

        trim = labeled_value(pairs, "Donanım", exact=True) or ""
        engine = labeled_value(pairs, "Motor", exact=True) or ""

        return make_row(
            model=model_name,
            trim=trim,
            engine=engine,
            transmission=labeled_value(pairs, "Şanzıman", exact=True) or "",
            fuel=classify(
                labeled_value(pairs, "Yakıt"), model_name, engine, trim
            ),
            price_raw=price_raw,
            price_numeric=price_numeric,
            brand=brand_name,
            model_year=to_int(labeled_value(pairs, "Model Yılı")),
            net_price=to_amount(
                labeled_value(pairs, "Net Fiyat") or labeled_value(pairs, "Vergisiz")
            ),
            otv_rate=labeled_value(pairs, "ÖTV Oranı"),
            otv_amount=to_amount(labeled_value(pairs, "ÖTV", exclude=("Oran",))),
            kdv_amount=to_amount(labeled_value(pairs, "KDV")),
            mtv_amount=to_amount(labeled_value(pairs, "MTV")),
            notary_fee=to_amount(
                labeled_value(pairs, "Noter", exclude=("Anahtar Teslim",))
            ),
            traffic_registration_fee=to_amount(labeled_value(pairs, "Tescil")),
            origin=labeled_value(pairs, "Menşei"),
            power_hp=power_hp(engine),
        )
