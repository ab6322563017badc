"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from autoprice.core.exceptions import ConfigError
from autoprice.core.models import ResponseType, SourceKind

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchConfig(BaseModel):
    """Upstream HTTP access configuration."""

    model_config = ConfigDict(frozen=True)

    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "tr-TR,tr;q=0.9,en-US;q=0.8,en;q=0.7"
    request_timeout: int = 30
    rate_limit: int = 5
    max_concurrent: int = 4
    run_deadline_seconds: int = 300
    max_retries: int = 3

    @field_validator("rate_limit", "max_concurrent", "request_timeout")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("run_deadline_seconds")
    @classmethod
    def deadline_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("run_deadline_seconds must be >= 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def retries_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v


class SourceConfig(BaseModel):
    """One upstream price-list feed."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str
    parser: SourceKind
    response_type: ResponseType = ResponseType.JSON
    origin: str | None = None
    referer: str | None = None
    enabled: bool = True

    @field_validator("id")
    @classmethod
    def id_is_slug(cls, v: str) -> str:
        v = v.strip().lower()
        if not v or any(ch.isspace() or ch == "/" for ch in v):
            raise ValueError(f"source id must be a non-empty slug, got: {v!r}")
        return v

    @field_validator("url")
    @classmethod
    def url_must_be_https(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("URL must use HTTPS")
        return v


DEFAULT_SOURCES: tuple[SourceConfig, ...] = (
    SourceConfig(
        id="volkswagen",
        name="Volkswagen",
        url="https://binekarac2.vw.com.tr/app/local/fiyatlardata/fiyatlar-test.json",
        parser=SourceKind.VOLKSWAGEN,
    ),
    SourceConfig(
        id="skoda",
        name="Škoda",
        url="https://www.skoda.com.tr/_next/data/JqOPjpaBnXsRA79zGw7R6/fiyat-listesi.json",
        parser=SourceKind.SKODA,
    ),
    SourceConfig(
        id="renault",
        name="Renault",
        url="https://best.renault.com.tr/wp-json/service/v1/CatFiyatData?cat=Binek",
        parser=SourceKind.RENAULT,
    ),
    SourceConfig(
        id="toyota",
        name="Toyota",
        url="https://turkiye.toyota.com.tr/middle/fiyat-listesi/fiyat_v3.xml",
        parser=SourceKind.TOYOTA,
        response_type=ResponseType.XML,
    ),
    SourceConfig(
        id="hyundai",
        name="Hyundai",
        url="https://www.hyundai.com/wsvc/tr/spa/pricelist/list?loc=TR&lan=tr",
        parser=SourceKind.HYUNDAI,
        origin="https://www.hyundai.com",
        referer="https://www.hyundai.com/",
    ),
    SourceConfig(
        id="ford",
        name="Ford",
        url="https://www.ford.com.tr/fwebapi/main/carPriceListNewUI?searchparam=&cartype=Binek",
        parser=SourceKind.FORD,
        origin="https://www.ford.com.tr",
        referer="https://www.ford.com.tr/kampanyalar/fiyat-listesi",
        # The endpoint rejects requests without a browser session cookie.
        enabled=False,
    ),
)


class StorageConfig(BaseModel):
    """Snapshot and index location."""

    model_config = ConfigDict(frozen=True)

    data_dir: str = "./data"


class ValidationConfig(BaseModel):
    """Sanity band applied to parsed prices before a snapshot is written."""

    model_config = ConfigDict(frozen=True)

    min_price: float = 100_000
    max_price: float = 50_000_000

    @model_validator(mode="after")
    def band_ordered(self) -> ValidationConfig:
        if self.min_price <= 0 or self.min_price >= self.max_price:
            raise ValueError("require 0 < min_price < max_price")
        return self


class TrendsConfig(BaseModel):
    """Trend query caching and window size."""

    model_config = ConfigDict(frozen=True)

    cache_ttl_seconds: int = 300
    cache_max_entries: int = 200
    max_points: int = 30

    @field_validator("cache_max_entries", "max_points")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8000
    api_key: str | None = None


class AutopriceConfig(BaseModel):
    """Root configuration for the entire autoprice system."""

    model_config = ConfigDict(frozen=True)

    fetch: FetchConfig = FetchConfig()
    sources: tuple[SourceConfig, ...] = DEFAULT_SOURCES
    storage: StorageConfig = StorageConfig()
    validation: ValidationConfig = ValidationConfig()
    trends: TrendsConfig = TrendsConfig()
    api: APIConfig = APIConfig()

    @field_validator("sources")
    @classmethod
    def source_ids_unique(
        cls, v: tuple[SourceConfig, ...]
    ) -> tuple[SourceConfig, ...]:
        seen: set[str] = set()
        for source in v:
            if source.id in seen:
                raise ValueError(f"duplicate source id: {source.id!r}")
            seen.add(source.id)
        return v

    @property
    def enabled_sources(self) -> list[SourceConfig]:
        return [s for s in self.sources if s.enabled]

    def get_source(self, source_id: str) -> SourceConfig | None:
        for source in self.sources:
            if source.id == source_id:
                return source
        return None


def load_config(
    config_path: str | None = None,
    env_prefix: str = "AUTOPRICE_",
) -> AutopriceConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (AUTOPRICE_FETCH__RATE_LIMIT, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        AUTOPRICE_STORAGE__DATA_DIR=/srv/data  ->  storage.data_dir = "/srv/data"
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return AutopriceConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("AUTOPRICE_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from AUTOPRICE_CONFIG not found: {env_path}",
                context={"field": "AUTOPRICE_CONFIG", "value": env_path},
            )
        return p

    default = Path("autoprice.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels. Values are auto-cast:
    "true"/"false" -> bool, numeric strings -> int/float. The source list
    is not addressable from the environment; use the YAML file for it.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        if parts == ["config"] or parts[0] == "sources":
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            else:
                target[part] = dict(target[part])
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
