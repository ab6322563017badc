"""Hyundai price list adapter.

``productList[].yearDetailList[].priceDetailList[]``; the product carries the
model name, the year detail the model year, and each price detail one trim.
"""

from __future__ import annotations

from typing import Iterator

from autoprice.core.models import CanonicalVehicleRow, RawPayload, SourceKind
from autoprice.normalize.fuel import classify
from autoprice.sources.base import (
    BaseSourceParser,
    as_list,
    dig,
    expect_list,
    first_present,
    is_absent,
    make_row,
    power_hp,
    text,
    to_amount,
    to_int,
    to_price,
)


def strip_trim(powertrain: str, trim: str) -> str:
    """Engine text is the powertrain name with the trim name taken out."""
    if trim:
        powertrain = powertrain.replace(trim, "", 1)
    return " ".join(powertrain.split())


class HyundaiParser(BaseSourceParser):
    kind = SourceKind.HYUNDAI

    def _variants(self, payload: RawPayload) -> Iterator[tuple[str, dict, dict]]:
        products = expect_list(dig(payload, "productList"), "productList", self.kind)
        for product in products:
            if not isinstance(product, dict):
                continue
            product_name = text(product.get("productName"))
            for year_detail in as_list(product.get("yearDetailList")):
                if not isinstance(year_detail, dict):
                    continue
                for detail in as_list(year_detail.get("priceDetailList")):
                    if isinstance(detail, dict):
                        yield product_name, year_detail, detail

    def _to_row(
        self, variant: tuple[str, dict, dict], brand_name: str
    ) -> CanonicalVehicleRow | None:
        product_name, year_detail, detail = variant
        price = to_price(first_present(detail, "suggestedPrice", "price"))
        if price is None:
            return None
        price_raw, price_numeric = price

        trim = text(detail.get("trimName"))
        powertrain = text(detail.get("powertrainName"))
        engine = strip_trim(powertrain, trim)

        list_price = None
        if not is_absent(detail.get("suggestedPrice")):
            list_price = to_amount(detail.get("price"))

        return make_row(
            model=product_name,
            trim=trim,
            engine=engine,
            transmission=text(detail.get("transmission")),
            fuel=classify(text(detail.get("fuelName")), product_name, engine, trim),
            price_raw=price_raw,
            price_numeric=price_numeric,
            brand=brand_name,
            model_year=to_int(first_present(year_detail, "modelYear", "year")),
            power_hp=power_hp(powertrain),
            price_list_numeric=list_price,
        )
