"""Helpers for JSON input/output with atomic writes."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any

from ..errors import ManifestInvalidError


def read_json(path: Path) -> Any:
    """Read JSON from *path* and return the decoded document."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise ManifestInvalidError(f"JSON file not found: {path}", path) from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestInvalidError(f"Invalid JSON data in {path}: {exc}", path) from exc
    except OSError as exc:
        raise ManifestInvalidError(f"Cannot read {path}: {exc}", path) from exc


def read_json_optional(path: Path) -> Any | None:
    """Return the decoded document at *path*, or ``None`` when it does not exist."""

    if not path.exists():
        return None
    return read_json(path)


def atomic_write_text(path: Path, data: str) -> None:
    """Atomically write *data* into *path*."""

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    with tmp_path.open("w", encoding="utf-8") as handle:
        handle.write(data)
        handle.flush()
        os.fsync(handle.fileno())
    # ``Path.replace`` can intermittently fail on Windows while another process
    # (antivirus, indexers) briefly holds either file; retry with a short back-off.
    for attempt in range(5):
        try:
            tmp_path.replace(path)
            return
        except PermissionError:
            # Never unlink the destination: a failed swap must leave the old document intact.
            if attempt == 4:
                tmp_path.unlink(missing_ok=True)
                raise
            time.sleep(0.05 * (attempt + 1))


def dumps(data: Any) -> str:
    """Serialise *data* the way every gallerysync document is stored on disk."""

    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


def write_json(path: Path, data: Any) -> None:
    """Write *data* into *path* atomically as pretty-printed UTF-8 JSON."""

    atomic_write_text(path, dumps(data))


__all__ = [
    "atomic_write_text",
    "dumps",
    "read_json",
    "read_json_optional",
    "write_json",
]
