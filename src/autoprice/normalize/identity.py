"""Deterministic vehicle identity keys."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")

_DEFAULTS = ("unknown", "unknown", "base", "standard")


def identity(
    brand: str | None,
    model: str | None,
    trim: str | None,
    engine: str | None,
) -> str:
    """Build the correlation key for one physical trim.

    Missing parts fall back to ``unknown``/``unknown``/``base``/``standard``.
    Each part is trimmed, then the joined key is lower-cased with whitespace
    runs collapsed to single hyphens, so ``("VW", "Golf", " Life", "1.5 TSI")``
    and ``("vw", "golf", "life", "1.5 tsi")`` give the same key.
    """
    parts = []
    for value, default in zip((brand, model, trim, engine), _DEFAULTS):
        text = str(value).strip() if value is not None else ""
        parts.append(text or default)
    return _WHITESPACE_RE.sub("-", "-".join(parts).lower())
