"""autoprice.trends — Price history, change detection, market events and caching."""

from autoprice.trends.cache import TrendCache
from autoprice.trends.engine import TrendEngine, compare, keyed_to
from autoprice.trends.events import build_market_events, diff_snapshots, summarize_events

__all__ = [
    "TrendCache",
    "TrendEngine",
    "compare",
    "keyed_to",
    "build_market_events",
    "diff_snapshots",
    "summarize_events",
]
