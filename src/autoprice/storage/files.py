"""Atomic JSON document persistence shared by the snapshot and index stores."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel


def render(document: BaseModel) -> str:
    """Serialize a model to the canonical on-disk JSON text.

    camelCase keys, unset optional attributes omitted, non-ASCII kept as is,
    two-space indent. Identical models always give identical text.
    """
    payload = document.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` so that readers see the old file or the new one.

    The text goes to a temporary file in the same directory, which is then
    renamed over ``path``. Raises ``OSError`` on failure, leaving any
    previous file untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)
