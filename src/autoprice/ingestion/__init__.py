"""autoprice.ingestion — Fetching upstream feeds and running collections."""

from autoprice.ingestion.dispatcher import Dispatcher, filter_valid_rows
from autoprice.ingestion.fetcher import SourceFetcher
from autoprice.ingestion.report import build_report, error_kind

__all__ = [
    "Dispatcher",
    "SourceFetcher",
    "build_report",
    "error_kind",
    "filter_valid_rows",
]
