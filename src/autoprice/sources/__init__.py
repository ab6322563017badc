"""autoprice.sources — Per-manufacturer price list adapters."""

from autoprice.core.models import SourceKind
from autoprice.sources.base import (
    BaseSourceParser,
    ParserFactory,
    SourceParser,
    SourceRegistry,
    as_list,
    first_present,
    is_active,
    labeled_value,
    registry,
)
from autoprice.sources.ford import FordParser
from autoprice.sources.hyundai import HyundaiParser
from autoprice.sources.renault import RenaultParser
from autoprice.sources.skoda import SkodaParser
from autoprice.sources.toyota import ToyotaParser
from autoprice.sources.volkswagen import VolkswagenParser

# Register built-in adapters
registry.register(SourceKind.VOLKSWAGEN, VolkswagenParser)
registry.register(SourceKind.SKODA, SkodaParser)
registry.register(SourceKind.RENAULT, RenaultParser)
registry.register(SourceKind.TOYOTA, ToyotaParser)
registry.register(SourceKind.HYUNDAI, HyundaiParser)
registry.register(SourceKind.FORD, FordParser)

__all__ = [
    "BaseSourceParser",
    "FordParser",
    "HyundaiParser",
    "ParserFactory",
    "RenaultParser",
    "SkodaParser",
    "SourceParser",
    "SourceRegistry",
    "ToyotaParser",
    "VolkswagenParser",
    "as_list",
    "first_present",
    "is_active",
    "labeled_value",
    "registry",
]
