"""autoprice.normalize — Pure text canonicalization: prices, fuel kinds, identities."""

from autoprice.normalize.fuel import FUEL_RULES, FuelKind, FuelRule, classify
from autoprice.normalize.identity import identity
from autoprice.normalize.price import (
    format_price,
    is_plausible_price,
    parse_price,
    strip_unit_suffix,
)

__all__ = [
    "FUEL_RULES",
    "FuelKind",
    "FuelRule",
    "classify",
    "format_price",
    "identity",
    "is_plausible_price",
    "parse_price",
    "strip_unit_suffix",
]
