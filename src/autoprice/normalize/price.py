"""Turkish-locale price text parsing and formatting."""

from __future__ import annotations

import math
import re

# Currency markers that may surround a price ("₺1.750.000,00", "850.000 TL").
_CURRENCY_RE = re.compile(r"₺|TRY|TL", re.IGNORECASE)
_UNIT_SUFFIX_RE = re.compile(r"\s*(?:TL|₺)\s*$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def parse_price(raw: str | None) -> float:
    """Parse a Turkish-formatted currency string into a float.

    ``"1.750.000,00 ₺"`` -> ``1750000.0``. Currency markers and whitespace
    are removed, ``.`` thousands separators dropped and the decimal ``,``
    turned into ``.``. Never raises: empty or unparsable input gives ``0.0``,
    which callers treat as "no price".
    """
    if not raw:
        return 0.0

    cleaned = _CURRENCY_RE.sub("", str(raw))
    cleaned = _WHITESPACE_RE.sub("", cleaned)
    cleaned = cleaned.replace(".", "").replace(",", ".")

    try:
        value = float(cleaned)
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def strip_unit_suffix(raw: str) -> str:
    """Remove a trailing currency unit: ``"850.000 TL"`` -> ``"850.000"``."""
    return _UNIT_SUFFIX_RE.sub("", str(raw)).strip()


def format_price(value: float) -> str:
    """Render a number the way Turkish price lists print it.

    ``1750000.5`` -> ``"₺1.750.000,50"``. Used for sources that publish bare
    numbers so every row still carries a locale ``priceRaw``.
    """
    grouped = f"{value:,.2f}"  # "1,750,000.50"
    return "₺" + grouped.replace(",", "_").replace(".", ",").replace("_", ".")


def is_plausible_price(value: float, min_price: float, max_price: float) -> bool:
    """True when ``value`` lies inside the configured sanity band."""
    return min_price <= value <= max_price
