"""Škoda price list adapter (Next.js page props)."""

from __future__ import annotations

import re
from typing import Any, Iterator

from autoprice.core.exceptions import SchemaError
from autoprice.core.models import CanonicalVehicleRow, RawPayload, SourceKind
from autoprice.normalize.fuel import classify
from autoprice.sources.base import (
    BaseSourceParser,
    as_list,
    dig,
    make_row,
    power_hp,
    text,
    to_amount,
    to_price,
)

# Checked in order; the first token found in the hardware text wins.
_TRANSMISSIONS = ("DSG", "Manuel", "Otomatik", "Manual", "Automatic")
_TRANSMISSION_RE = re.compile(
    r"\b(?:" + "|".join(_TRANSMISSIONS) + r")\b", re.IGNORECASE
)
_WHITESPACE_RE = re.compile(r"\s+")


def split_hardware(hardware: str) -> tuple[str, str]:
    """``"1.5 TSI 150 PS DSG"`` -> ``("1.5 TSI 150 PS", "DSG")``."""
    transmission = ""
    for token in _TRANSMISSIONS:
        if re.search(rf"\b{token}\b", hardware, re.IGNORECASE):
            transmission = token
            break
    engine = _WHITESPACE_RE.sub(" ", _TRANSMISSION_RE.sub("", hardware)).strip()
    return engine, transmission


class SkodaParser(BaseSourceParser):
    """Adapter for ``pageProps.priceListSections[]``.

    Newer builds of the site nest the same sections under
    ``pageProps.tabs[0].content.priceListData``; both are accepted.
    """

    kind = SourceKind.SKODA

    def _sections(self, payload: RawPayload) -> list[Any]:
        for path in (
            ("pageProps", "priceListSections"),
            ("pageProps", "tabs", 0, "content", "priceListData", "priceListSections"),
        ):
            sections = dig(payload, *path)
            if isinstance(sections, list):
                return sections
        raise SchemaError(
            "priceListSections not found",
            context={"source": str(self.kind), "path": "pageProps.priceListSections"},
        )

    def _variants(self, payload: RawPayload) -> Iterator[tuple[str, dict]]:
        for section in self._sections(payload):
            for item in as_list(dig(section, "items")):
                if not isinstance(item, dict):
                    continue
                model_name = text(item.get("title"))
                for row in as_list(dig(item, "modelPricesTable", "data")):
                    if isinstance(row, dict):
                        yield model_name, row

    def _to_row(
        self, variant: tuple[str, dict], brand_name: str
    ) -> CanonicalVehicleRow | None:
        model_name, cells = variant
        price = to_price(dig(cells, "currentPrice", "value"), field="currentPrice")
        if price is None:
            return None
        price_raw, price_numeric = price

        hardware = text(dig(cells, "hardware", "value"))
        engine, transmission = split_hardware(hardware)

        return make_row(
            model=model_name,
            trim=hardware,
            engine=engine,
            transmission=transmission,
            fuel=classify(model_name, hardware),
            price_raw=price_raw,
            price_numeric=price_numeric,
            brand=brand_name,
            power_hp=power_hp(hardware),
            price_list_numeric=to_amount(dig(cells, "listPrice", "value")),
        )
