"""Renault price list adapter.

The feed is a flat ``results[]`` array. ``AntesFiyati`` is the
tax-inclusive turnkey price and arrives as a bare number (sometimes a
numeric string), so ``priceRaw`` is rendered locally.
"""

from __future__ import annotations

from typing import Any, Iterator

from autoprice.core.exceptions import FieldParseError
from autoprice.core.models import CanonicalVehicleRow, RawPayload, SourceKind
from autoprice.normalize.fuel import classify
from autoprice.sources.base import (
    BaseSourceParser,
    dig,
    expect_list,
    first_present,
    is_absent,
    make_row,
    text,
    to_int,
    to_price,
)


def _number(value: Any, field: str) -> float | None:
    if is_absent(value):
        return None
    try:
        return float(str(value).strip())
    except ValueError as e:
        raise FieldParseError(
            f"{field} is not numeric: {value!r}",
            context={"field": field, "value": value},
        ) from e


class RenaultParser(BaseSourceParser):
    kind = SourceKind.RENAULT

    def _variants(self, payload: RawPayload) -> Iterator[dict]:
        results = expect_list(dig(payload, "results"), "results", self.kind)
        for item in results:
            if isinstance(item, dict):
                yield item

    def _to_row(self, item: dict, brand_name: str) -> CanonicalVehicleRow | None:
        price = to_price(_number(item.get("AntesFiyati"), "AntesFiyati"), "AntesFiyati")
        if price is None:
            return None
        price_raw, price_numeric = price

        model_name = text(item.get("ModelAdi"))
        trim = text(first_present(item, "EkipmanAdi", "VersiyonAdi"))
        engine = text(item.get("VersiyonAdi"))
        fuel_label = text(item.get("YakitTipi"))

        try:
            net_price = _number(item.get("VergisizFiyat"), "VergisizFiyat")
        except FieldParseError:
            net_price = None
        otv_rate = item.get("OtvOrani")

        return make_row(
            model=model_name,
            trim=trim,
            engine=engine,
            transmission=text(item.get("VitesTipi")),
            fuel=classify(fuel_label, model_name, engine, trim),
            price_raw=price_raw,
            price_numeric=price_numeric,
            brand=brand_name,
            model_year=to_int(item.get("ModelYili")),
            net_price=round(net_price, 2) if net_price else None,
            otv_rate=None if is_absent(otv_rate) else text(otv_rate),
        )
