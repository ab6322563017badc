"""autoprice.core — Foundation types, config, and exceptions."""

from autoprice.core.config import (
    APIConfig,
    AutopriceConfig,
    FetchConfig,
    SourceConfig,
    StorageConfig,
    TrendsConfig,
    ValidationConfig,
    load_config,
)
from autoprice.core.exceptions import (
    AutopriceError,
    ConfigError,
    FieldParseError,
    IngestionError,
    NetworkError,
    RateLimitError,
    SchemaError,
    StorageError,
    WriteError,
)
from autoprice.core.models import (
    BrandId,
    BrandIndexEntry,
    CanonicalVehicleRow,
    ErrorKind,
    Index,
    MarketEvent,
    MarketEvents,
    MarketEventSummary,
    MarketEventType,
    PriceChangeEvent,
    PricePoint,
    RawPayload,
    ResponseType,
    RunReport,
    Snapshot,
    SourceKind,
    SourceResult,
    TrackedVehicle,
    TrendDirection,
    TrendSummary,
    VehicleIdentity,
    VolatilityMetric,
    row_identity,
)

__all__ = [
    # Type aliases
    "BrandId",
    "VehicleIdentity",
    "RawPayload",
    # Enums
    "SourceKind",
    "ResponseType",
    "ErrorKind",
    "TrendDirection",
    "MarketEventType",
    # Row and snapshot models
    "CanonicalVehicleRow",
    "Snapshot",
    "BrandIndexEntry",
    "Index",
    "row_identity",
    # Tracking and trend models
    "TrackedVehicle",
    "PriceChangeEvent",
    "PricePoint",
    "TrendSummary",
    # Market event models
    "MarketEvent",
    "MarketEventSummary",
    "MarketEvents",
    "VolatilityMetric",
    # Run report models
    "SourceResult",
    "RunReport",
    # Config
    "AutopriceConfig",
    "FetchConfig",
    "SourceConfig",
    "StorageConfig",
    "ValidationConfig",
    "TrendsConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "AutopriceError",
    "ConfigError",
    "IngestionError",
    "NetworkError",
    "RateLimitError",
    "SchemaError",
    "FieldParseError",
    "StorageError",
    "WriteError",
]
