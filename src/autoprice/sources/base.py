"""Source adapter protocol, registry, and shared payload helpers."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, ClassVar, Iterable, Protocol, runtime_checkable

from pydantic import ValidationError

from autoprice.core.exceptions import FieldParseError, SchemaError
from autoprice.core.models import CanonicalVehicleRow, RawPayload, SourceKind
from autoprice.normalize.price import format_price, parse_price, strip_unit_suffix

logger = logging.getLogger("autoprice.sources")

_ABSENT_TEXT = ("", "N/A")
_POWER_HP_RE = re.compile(r"(\d{2,4})\s*(?:PS|HP|BG)\b", re.IGNORECASE)
_POWER_KW_RE = re.compile(r"(\d{2,4})\s*kW\b", re.IGNORECASE)


@runtime_checkable
class SourceParser(Protocol):
    """Protocol for all upstream price-list adapters.

    ``parse`` is pure and synchronous. It never raises on malformed input:
    a payload of the wrong shape yields ``[]`` and a logged warning, and a
    variant with an unparsable field is dropped on its own.
    """

    @property
    def kind(self) -> SourceKind: ...

    def parse(
        self, payload: RawPayload, brand_name: str
    ) -> list[CanonicalVehicleRow]: ...


class BaseSourceParser:
    """Skeleton shared by the built-in adapters.

    Subclasses implement two hooks:

    - ``_variants(payload)`` walks the upstream structure and yields one
      record per priced variant. Raise ``SchemaError`` when the expected
      list/object is missing.
    - ``_to_row(variant, brand_name)`` maps one record to a canonical row,
      returns ``None`` for records that carry no price (quietly skipped), or
      raises ``FieldParseError`` for a field that cannot be parsed.
    """

    kind: ClassVar[SourceKind]

    def parse(
        self, payload: RawPayload, brand_name: str
    ) -> list[CanonicalVehicleRow]:
        try:
            variants = list(self._variants(payload))
        except (SchemaError, AttributeError, TypeError, KeyError) as e:
            logger.warning(
                "%s payload does not match the expected shape: %s", self.kind, e
            )
            return []

        rows: list[CanonicalVehicleRow] = []
        dropped = 0
        for variant in variants:
            try:
                row = self._to_row(variant, brand_name)
            except (
                FieldParseError,
                ValidationError,
                AttributeError,
                TypeError,
                ValueError,
                OverflowError,
            ) as e:
                dropped += 1
                logger.debug("%s: dropping variant: %s", self.kind, e)
                continue
            if row is not None:
                rows.append(row)

        if dropped:
            logger.debug("%s: %d variant(s) dropped", self.kind, dropped)
        return rows

    def _variants(self, payload: RawPayload) -> Iterable[Any]:
        raise NotImplementedError

    def _to_row(self, variant: Any, brand_name: str) -> CanonicalVehicleRow | None:
        raise NotImplementedError


ParserFactory = Callable[[], SourceParser]


class SourceRegistry:
    """Registry of available source adapters, keyed by ``SourceKind``."""

    def __init__(self) -> None:
        self._factories: dict[SourceKind, ParserFactory] = {}

    def register(self, kind: SourceKind, factory: ParserFactory) -> None:
        if kind in self._factories:
            raise ValueError(
                f"Source parser '{kind}' is already registered. Use replace() to override."
            )
        self._factories[kind] = factory

    def replace(self, kind: SourceKind, factory: ParserFactory) -> None:
        if kind not in self._factories:
            raise KeyError(f"Source parser '{kind}' is not registered.")
        self._factories[kind] = factory

    def get(self, kind: SourceKind | str) -> ParserFactory:
        return self._factories[SourceKind(kind)]

    def create(self, kind: SourceKind | str) -> SourceParser:
        """Instantiate the adapter registered for ``kind``."""
        return self.get(kind)()

    def list_names(self) -> list[str]:
        return [str(k) for k in self._factories]


# Module-level singleton registry
registry = SourceRegistry()


# --- Payload helpers ---


def as_list(value: Any) -> list[Any]:
    """Normalize an object-or-array field: None -> [], object -> [object]."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def expect_list(value: Any, path: str, source: SourceKind | str) -> list[Any]:
    """Return ``value`` if it is a list, else raise ``SchemaError``."""
    if not isinstance(value, list):
        raise SchemaError(
            f"expected a list at {path}, got {type(value).__name__}",
            context={"source": str(source), "path": path},
        )
    return value


def dig(obj: Any, *keys: str | int) -> Any:
    """Walk nested dicts/lists; None as soon as a step is missing."""
    current = obj
    for key in keys:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def is_absent(value: Any) -> bool:
    """True for None, blank or ``"N/A"`` text, and numeric zero."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in _ABSENT_TEXT
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def first_present(record: dict[str, Any], *keys: str) -> Any:
    """Value of the first key in ``keys`` whose value is not absent."""
    for key in keys:
        value = record.get(key)
        if not is_absent(value):
            return value
    return None


def is_active(flag: Any) -> bool:
    """Upstream on/off flags arrive as ``1`` or ``"1"``."""
    if isinstance(flag, bool):
        return False
    return str(flag).strip() == "1"


def text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def labeled_value(
    pairs: Iterable[dict[str, Any]],
    include: str | tuple[str, ...],
    exclude: tuple[str, ...] = (),
    *,
    exact: bool = False,
    title_key: str = "-Title",
    value_key: str = "-Value",
) -> str | None:
    """Scan title/value pairs for the first matching title.

    With ``exact=True`` the title must equal ``include``. Otherwise the title
    must contain every ``include`` term and none of the ``exclude`` terms,
    so that near-miss labels ("Noter Dahil Anahtar Teslim Fiyat") are skipped.
    """
    terms = (include,) if isinstance(include, str) else include
    for pair in pairs:
        if not isinstance(pair, dict):
            continue
        title = text(pair.get(title_key))
        if exact:
            matched = title in terms
        else:
            matched = all(t in title for t in terms) and not any(
                t in title for t in exclude
            )
        if matched:
            value = text(pair.get(value_key))
            if value:
                return value
    return None


def to_price(value: Any, field: str = "price") -> tuple[str, float] | None:
    """Turn an upstream price into ``(priceRaw, priceNumeric)``.

    Bare numbers are rounded to kuruş and rendered with ``format_price``.
    Text keeps its upstream form minus a trailing ``TL``/``₺`` unit. Absent
    values give ``None``; present but unparsable ones raise
    ``FieldParseError``.
    """
    if is_absent(value):
        return None
    if isinstance(value, bool):
        raise FieldParseError(
            f"{field} is not a price: {value!r}",
            context={"field": field, "value": value},
        )
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            raise FieldParseError(
                f"{field} is not a price: {value!r}",
                context={"field": field, "value": value},
            )
        amount = round(float(value), 2)
        return format_price(amount), amount

    raw = strip_unit_suffix(str(value))
    numeric = parse_price(raw)
    if numeric <= 0:
        raise FieldParseError(
            f"{field} is not a price: {value!r}",
            context={"field": field, "value": value},
        )
    return raw, numeric


def to_amount(value: Any) -> float | None:
    """Best-effort numeric value of an optional money field."""
    if is_absent(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    amount = parse_price(str(value))
    return amount or None


def to_int(value: Any) -> int | None:
    """Integer value of an optional field; None when absent, garbage or non-finite."""
    if is_absent(value) or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def power_hp(*texts: str | None) -> int | None:
    """Horsepower mentioned in engine text ("1.5 TSI 150 PS")."""
    for t in texts:
        if t:
            match = _POWER_HP_RE.search(t)
            if match:
                return int(match.group(1))
    return None


def power_kw(*texts: str | None) -> int | None:
    for t in texts:
        if t:
            match = _POWER_KW_RE.search(t)
            if match:
                return int(match.group(1))
    return None


def make_row(**fields: Any) -> CanonicalVehicleRow:
    """Build a canonical row, leaving unset extended attributes out."""
    return CanonicalVehicleRow(**{k: v for k, v in fields.items() if v is not None})
