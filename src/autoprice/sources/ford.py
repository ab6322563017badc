"""Ford price list adapter. ``carPriceList[].entities[]``."""

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
    text,
    to_amount,
    to_int,
    to_price,
)


class FordParser(BaseSourceParser):
    kind = SourceKind.FORD

    def _variants(self, payload: RawPayload) -> Iterator[tuple[str, dict]]:
        cars = expect_list(dig(payload, "carPriceList"), "carPriceList", self.kind)
        for car in cars:
            if not isinstance(car, dict):
                continue
            model_name = text(car.get("modelName"))
            for entity in as_list(car.get("entities")):
                if isinstance(entity, dict):
                    yield model_name, entity

    def _to_row(
        self, variant: tuple[str, dict], brand_name: str
    ) -> CanonicalVehicleRow | None:
        model_name, entity = variant
        price = to_price(
            first_present(entity, "campaignedTurnkeyPrice", "deliveredTurnkeyListPrice")
        )
        if price is None:
            return None
        price_raw, price_numeric = price

        trim = text(entity.get("series"))
        engine = text(entity.get("engine"))

        list_price = None
        if not is_absent(entity.get("campaignedTurnkeyPrice")):
            list_price = to_amount(entity.get("deliveredTurnkeyListPrice"))

        return make_row(
            model=model_name,
            trim=trim,
            engine=engine,
            transmission=text(entity.get("gearbox")),
            fuel=classify(text(entity.get("fuelType")), model_name, engine, trim),
            price_raw=price_raw,
            price_numeric=price_numeric,
            brand=brand_name,
            power_hp=to_int(entity.get("horsePower")),
            drive_type=text(entity.get("driveTrain")) or None,
            price_list_numeric=list_price,
        )
