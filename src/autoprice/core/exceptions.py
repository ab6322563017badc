"""Custom exception hierarchy for autoprice."""

from typing import Any


class AutopriceError(Exception):
    """Base exception for all autoprice errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(AutopriceError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value
    """


class IngestionError(AutopriceError):
    """Failed to fetch or parse one upstream source.

    Policy: log and skip the source for this run. Do not abort the run.

    Context keys:
        source: str — the source id that failed
        url: str — the URL that was being fetched
    """


class NetworkError(IngestionError):
    """Fetch failed, timed out, or returned a non-200 status.

    Policy: the source is unavailable this run; other sources proceed.

    Context keys:
        url: str — the URL that was being fetched
        status_code: int | None — HTTP status if a response arrived
    """


class RateLimitError(NetworkError):
    """Upstream rate limit exceeded (HTTP 429) after retries.

    Context keys:
        retry_after: int | None — seconds the server asked us to wait
    """


class SchemaError(IngestionError):
    """Expected list/object not found in an upstream payload.

    Policy: the adapter returns zero rows for that source and logs.

    Context keys:
        source: str — the source id
        path: str — the payload path that was expected
    """


class FieldParseError(IngestionError):
    """A single field of one upstream row could not be parsed.

    Policy: drop only that row. Sibling rows are unaffected.

    Context keys:
        field: str — the field that failed
        value: Any — the raw value
    """


class StorageError(AutopriceError):
    """Snapshot or index persistence failed.

    Policy: raise immediately. The index must never point at missing data.

    Context keys:
        operation: str — "write", "read", "record_date", etc.
        path: str — the file involved
    """


class WriteError(StorageError):
    """A snapshot file could not be written.

    Policy: the index is not updated for that source; the run is
    incomplete for that source only.
    """
