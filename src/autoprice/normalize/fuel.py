"""Fuel / powertrain classification from free-text price-list fields.

Upstream feeds describe powertrains inconsistently: a plug-in hybrid's engine
text usually also carries the base combustion code ("1.4 TSI eHybrid"), an
electric model may only be recognisable from its name ("ID.4", "Enyaq") and
mild hybrids hide behind codes like "eTSI". Classification is therefore an
ordered rule table evaluated top to bottom; the first matching rule wins.

Precedence that must hold:

1. Plug-in hybrid markers before any generic hybrid marker.
2. Mild hybrid markers before any generic hybrid marker.
3. Electric markers before petrol/diesel engine codes.

Nothing is inferred when no rule matches: the result is ``FuelKind.UNKNOWN``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable


class FuelKind(StrEnum):
    """Canonical fuel / powertrain categories."""

    ELECTRIC = "Electric"
    PLUG_IN_HYBRID = "Plug-in Hybrid"
    MILD_HYBRID = "Mild Hybrid"
    HYBRID = "Hybrid"
    DIESEL_HYBRID = "Diesel Hybrid"
    PETROL = "Petrol"
    DIESEL = "Diesel"
    CNG = "CNG"
    PETROL_LPG = "Petrol/LPG"
    UNKNOWN = "Unknown"


Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class FuelRule:
    """One row of the classification table."""

    kind: FuelKind
    predicate: Predicate
    description: str = ""


def _contains_any(*markers: str) -> Predicate:
    def check(text: str) -> bool:
        return any(marker in text for marker in markers)

    return check


def _matches(pattern: str) -> Predicate:
    compiled = re.compile(pattern)

    def check(text: str) -> bool:
        return compiled.search(text) is not None

    return check


def _all_of(*predicates: Predicate) -> Predicate:
    def check(text: str) -> bool:
        return all(p(text) for p in predicates)

    return check


def _any_of(*predicates: Predicate) -> Predicate:
    def check(text: str) -> bool:
        return any(p(text) for p in predicates)

    return check


_HYBRID = _any_of(
    _contains_any("hybrid", "hibrit"),
    _matches(r"\b(?:hev|fhev)\b"),
)
_DIESEL_CODE = _matches(
    r"\b(?:tdi|dci|crdi|hdi|bluehdi|multijet|m\.?jet|ecoblue|d-4d|cdi)\b"
)
_DIESEL_WORD = _contains_any("dizel", "diesel")

FUEL_RULES: tuple[FuelRule, ...] = (
    FuelRule(
        FuelKind.PLUG_IN_HYBRID,
        _contains_any(
            "plug-in", "plug in", "phev", "e-hybrid", "ehybrid",
            "şarj edilebilir", "iv rs", "ivrs",
        ),
        "plug-in markers beat every hybrid/combustion marker",
    ),
    FuelRule(
        FuelKind.MILD_HYBRID,
        _any_of(
            _contains_any("mild hybrid", "mild-hybrid", "mhev", "hafif hibrit", "48v"),
            _matches(r"\betsi\b|\be-tsi\b"),
        ),
        "mild-hybrid markers beat generic hybrid",
    ),
    FuelRule(
        FuelKind.DIESEL_HYBRID,
        _all_of(_HYBRID, _any_of(_DIESEL_WORD, _DIESEL_CODE)),
        "hybrid paired with a diesel marker",
    ),
    FuelRule(FuelKind.HYBRID, _HYBRID, "generic hybrid"),
    FuelRule(
        FuelKind.ELECTRIC,
        _any_of(
            _contains_any("elektrik", "electric", "e-tron", "enyaq", "elroq"),
            _matches(r"\bid\.\s?\d|\bid\.\s?buzz|\bbev\b|\bev\b"),
            _matches(r"\bioniq\s?[5-9]\b|\bkona\s+e\b|\be-\d{3,4}\b"),
            # battery sizes and Skoda/Kia-style "85 e-Sportline" trim codes
            _matches(r"\b\d+\s?kwh\b|\b\d+\s*e-[a-z]"),
        ),
        "electric model names and EV trim codes before combustion codes",
    ),
    FuelRule(
        FuelKind.CNG,
        _any_of(_contains_any("cng"), _matches(r"\btgi\b")),
        "compressed natural gas",
    ),
    FuelRule(
        FuelKind.PETROL_LPG,
        _any_of(_contains_any("lpg"), _matches(r"\bbi-?fuel\b")),
        "factory LPG conversions",
    ),
    FuelRule(
        FuelKind.DIESEL,
        _any_of(_DIESEL_WORD, _DIESEL_CODE),
        "diesel words and engine codes",
    ),
    FuelRule(
        FuelKind.PETROL,
        _any_of(
            _contains_any("benzin", "petrol", "gasoline"),
            _matches(
                r"\b(?:tsi|tfsi|tce|t-gdi|gdi|mpi|puretech|ecoboost|"
                r"vvt-i|t-jet|fire|turbo)\b"
            ),
        ),
        "petrol words and engine codes",
    ),
)


def classify(*texts: str | None) -> FuelKind:
    """Classify the fuel kind of a vehicle from its descriptive texts.

    The texts (typically model name, engine, trim and any upstream fuel
    label) are joined and lower-cased, then run through ``FUEL_RULES``.
    """
    combined = " ".join(str(t) for t in texts if t).lower()
    if not combined.strip():
        return FuelKind.UNKNOWN
    for rule in FUEL_RULES:
        if rule.predicate(combined):
            return rule.kind
    return FuelKind.UNKNOWN
