"""Batch-oriented helpers for invoking the :command:`exiftool` CLI."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List

from ..errors import ExternalToolError

# Tags requested from exiftool; mirrors the flat record produced by the Pillow reader.
EXIFTOOL_TAGS = (
    "Make",
    "Model",
    "LensModel",
    "FNumber",
    "ExposureTime",
    "ISO",
    "DateTimeOriginal",
    "FocalLength",
    "Copyright",
    "Artist",
    "ImageDescription",
    "GPSLatitude",
    "GPSLongitude",
)

BATCH_SIZE = 50


def _startup_options() -> tuple[Any, int]:
    startupinfo = None
    creationflags = 0
    if os.name == "nt":
        startupinfo = subprocess.STARTUPINFO()  # type: ignore[attr-defined]
        startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW  # type: ignore[attr-defined]
        startupinfo.wShowWindow = subprocess.SW_HIDE  # type: ignore[attr-defined]
        creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
    return startupinfo, creationflags


def _parse_payload(stdout: str) -> List[Dict[str, Any]]:
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise ExternalToolError(f"Failed to parse JSON output from ExifTool: {exc}") from exc
    if not isinstance(payload, list):
        return []
    return [entry for entry in payload if isinstance(entry, dict)]


def get_metadata_batch(paths: List[Path]) -> List[Dict[str, Any]]:
    """Return metadata for *paths* by launching ``exiftool`` in batches.

    Each entry carries a ``SourceFile`` key identifying the inspected file.
    ``-n`` makes GPS coordinates signed decimal degrees, so callers can use
    them without any degrees/minutes/seconds conversion.

    Raises
    ------
    ExternalToolError
        Raised when the ``exiftool`` executable is missing or when the command
        exits with a non-zero status code.
    """

    executable = shutil.which("exiftool")
    if executable is None:
        raise ExternalToolError(
            "exiftool executable not found. Install it from https://exiftool.org/ "
            "and ensure it is available on PATH."
        )

    if not paths:
        return []

    startupinfo, creationflags = _startup_options()
    results: List[Dict[str, Any]] = []

    for i in range(0, len(paths), BATCH_SIZE):
        batch = paths[i : i + BATCH_SIZE]
        cmd = [
            executable,
            "-n",
            "-json",
            "-charset",
            "UTF8",
            *[f"-{tag}" for tag in EXIFTOOL_TAGS],
            *[str(path) for path in batch],
        ]

        try:
            process = subprocess.run(
                cmd,
                capture_output=True,
                check=True,
                encoding="utf-8",
                errors="replace",
                startupinfo=startupinfo,
                creationflags=creationflags,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(f"Failed to execute exiftool (FileNotFoundError): {exc}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.strip() if exc.stderr else "unknown error"
            # ExifTool exits non-zero when only some files could be read; keep the
            # payload for those as long as JSON came back.
            if "image files read" in stderr.lower() and exc.stdout:
                results.extend(_parse_payload(exc.stdout))
                continue
            raise ExternalToolError(f"ExifTool failed with an error: {stderr}") from exc

        results.extend(_parse_payload(process.stdout))

    return results


def get_metadata(path: Path) -> Dict[str, Any]:
    """Return the exiftool record for a single file (empty when nothing came back)."""

    records = get_metadata_batch([path])
    return records[0] if records else {}


__all__ = ["EXIFTOOL_TAGS", "get_metadata", "get_metadata_batch"]
