"""Toyota price list adapter (XML feed, decoded with xmltodict).

Payload shape after decoding::

    Data.Model: {...} | [{...}, ...]
        ModelFiyat: {...} | [{...}, ...]
            Durum, Govde, Model, MotorHacmi, MotorTipi, VitesTipi,
            KampanyaliFiyati2, KampanyaliFiyati1, ListeFiyati2, ListeFiyati1

xmltodict collapses single children to objects, hence ``as_list`` at both
levels. Every leaf is a string.
"""

from __future__ import annotations

from typing import Iterator

from autoprice.core.exceptions import SchemaError
from autoprice.core.models import CanonicalVehicleRow, RawPayload, SourceKind
from autoprice.normalize.fuel import classify
from autoprice.sources.base import (
    BaseSourceParser,
    as_list,
    dig,
    first_present,
    is_active,
    make_row,
    text,
    to_amount,
    to_int,
    to_price,
)

_PRICE_FALLBACK = (
    "KampanyaliFiyati2",
    "KampanyaliFiyati1",
    "ListeFiyati2",
    "ListeFiyati1",
)

# Disclosure lines published as pseudo-variants ("%80 ÖTV ...",
# "Tüm versiyonlarda ...").
_INFORMATIONAL_MARKERS = ("%", "ÖTV", "versiyonlarda")


def is_informational(name: str) -> bool:
    lowered = name.lower()
    return any(m in name or m.lower() in lowered for m in _INFORMATIONAL_MARKERS)


class ToyotaParser(BaseSourceParser):
    kind = SourceKind.TOYOTA

    def _variants(self, payload: RawPayload) -> Iterator[dict]:
        models = dig(payload, "Data", "Model")
        if models is None:
            raise SchemaError(
                "Data.Model not found",
                context={"source": str(self.kind), "path": "Data.Model"},
            )
        for model in as_list(models):
            if not isinstance(model, dict):
                continue
            for item in as_list(model.get("ModelFiyat")):
                if isinstance(item, dict):
                    yield item

    def _to_row(self, item: dict, brand_name: str) -> CanonicalVehicleRow | None:
        if not is_active(item.get("Durum")):
            return None
        trim = text(item.get("Model"))
        if is_informational(trim):
            return None

        price = to_price(first_present(item, *_PRICE_FALLBACK), field="Fiyat")
        if price is None:
            return None
        price_raw, price_numeric = price

        model_name = text(item.get("Govde"))
        engine = text(item.get("MotorHacmi"))

        return make_row(
            model=model_name,
            trim=trim,
            engine=engine,
            transmission=text(item.get("VitesTipi")),
            fuel=classify(text(item.get("MotorTipi")), model_name, engine, trim),
            price_raw=price_raw,
            price_numeric=price_numeric,
            brand=brand_name,
            model_year=to_int(item.get("ModelYili")),
            price_list_numeric=to_amount(
                first_present(item, "ListeFiyati2", "ListeFiyati1")
            ),
            price_campaign_numeric=to_amount(
                first_present(item, "KampanyaliFiyati2", "KampanyaliFiyati1")
            ),
            otv_incentive_price=to_amount(item.get("OtvTesvikliFiyat")),
        )
