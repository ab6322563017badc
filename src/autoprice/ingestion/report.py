"""Per-source outcomes and the run-level health report."""

from __future__ import annotations

from datetime import date, datetime, timezone

from autoprice.core.config import SourceConfig
from autoprice.core.exceptions import (
    NetworkError,
    RateLimitError,
    SchemaError,
    StorageError,
)
from autoprice.core.models import ErrorKind, RunReport, SourceResult


def error_kind(exc: BaseException) -> ErrorKind:
    """Map a failure to the stage it belongs to. Most specific class first."""
    if isinstance(exc, RateLimitError):
        return ErrorKind.RATE_LIMIT
    if isinstance(exc, NetworkError):
        return ErrorKind.NETWORK
    if isinstance(exc, SchemaError):
        return ErrorKind.SCHEMA
    if isinstance(exc, StorageError):
        return ErrorKind.STORAGE
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNEXPECTED


def success(source: SourceConfig, count: int) -> SourceResult:
    return SourceResult(
        brand_id=source.id,
        brand_name=source.name,
        success=True,
        count=count,
        indexed=True,
    )


def failure(
    source: SourceConfig,
    error: BaseException | str,
    kind: ErrorKind | None = None,
    *,
    count: int = 0,
) -> SourceResult:
    """Result for a source that produced nothing indexable this run."""
    if isinstance(error, BaseException):
        kind = kind or error_kind(error)
        message = str(error) or type(error).__name__
    else:
        message = error
    return SourceResult(
        brand_id=source.id,
        brand_name=source.name,
        success=False,
        count=count,
        error=message,
        error_kind=kind or ErrorKind.UNEXPECTED,
        indexed=False,
    )


def build_report(
    run_date: date,
    results: list[SourceResult],
    generated_at: datetime | None = None,
) -> RunReport:
    """Aggregate per-source results, keeping their order."""
    successful = sum(1 for r in results if r.success)
    return RunReport(
        generated_at=generated_at or datetime.now(timezone.utc),
        run_date=run_date,
        total_brands=len(results),
        successful=successful,
        failed=len(results) - successful,
        details=results,
    )
