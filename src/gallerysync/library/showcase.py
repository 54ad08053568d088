"""Process the flat showcase directory into ``site/showcase.json``.

The showcase reuses the album photo pipeline through the ``collection``
content profile.  Entries already present in the document keep their
position and hand-edited fields; new images are appended.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..cache.manifest_store import ManifestStore
from ..config import ContentProfile, PipelineSettings
from ..core.reconciler import merge_photo, photo_key
from ..errors import InputRootMissingError, ManifestInvalidError
from ..io.scanner import list_images
from ..models import ItemResult, PhotoRecord, RunSummary
from ..utils.jsonio import read_json, read_json_optional
from .pipeline import build_photos, create_builder, record_builds

LOGGER = logging.getLogger(__name__)


def load_location_names(profile: ContentProfile) -> dict[str, Any]:
    """Return the ``locations`` map of the collection's metadata file."""

    path = profile.input_dir / profile.metadata_file
    if not path.exists():
        return {}
    try:
        data = read_json(path)
    except ManifestInvalidError as exc:
        LOGGER.warning("Could not parse %s: %s", path, exc)
        return {}
    locations = data.get("locations") if isinstance(data, dict) else None
    if not isinstance(locations, dict):
        LOGGER.warning("Ignoring %s: expected a 'locations' object", path)
        return {}
    return locations


def lookup_location(locations: Mapping[str, Any], filename: str, position: int) -> Optional[Any]:
    """Find a location by filename, then base name, then 1-based position."""

    base_name = filename.rsplit(".", 1)[0]
    for key in (filename, base_name, str(position)):
        value = locations.get(key)
        if value:
            return value
    return None


def _number(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def merge_collection(
    fresh: Sequence[PhotoRecord],
    existing: Sequence[Mapping[str, Any]],
    locations: Mapping[str, Any],
) -> list[dict[str, Any]]:
    """Merge this run's records into the existing collection entries."""

    fresh_entries = []
    for position, record in enumerate(fresh, start=1):
        entry = record.to_dict()
        entry["location"] = lookup_location(locations, record.filename, position)
        fresh_entries.append(entry)

    by_key: dict[str, int] = {}
    for index, entry in enumerate(fresh_entries):
        for key in (photo_key(entry), str(entry["filename"]).lower()):
            if key:
                by_key.setdefault(key, index)

    merged: list[dict[str, Any]] = []
    used: set[int] = set()
    for old in existing:
        match: Optional[int] = None
        for key in (photo_key(old), str(old.get("filename") or "").lower()):
            if key and by_key.get(key) is not None and by_key[key] not in used:
                match = by_key[key]
                break
        if match is None:
            merged.append(dict(old))
            continue
        used.add(match)
        entry = merge_photo(fresh_entries[match], old)
        for key in ("id", "order"):
            if key in old:
                entry[key] = old[key]
        if old.get("location"):
            entry["location"] = old["location"]
        merged.append(entry)

    next_id = max((_number(entry.get("id")) for entry in merged), default=0)
    for index, entry in enumerate(fresh_entries):
        if index in used:
            continue
        next_id += 1
        max_order = max((_number(item.get("order")) for item in merged), default=0)
        merged.append({"id": next_id, **entry, "order": max_order + 1})
    return merged


def run_showcase(settings: PipelineSettings) -> RunSummary:
    profile = settings.showcase_profile()
    if not profile.input_dir.is_dir():
        raise InputRootMissingError(profile.input_dir)

    store = ManifestStore(settings.content_dir)
    previous = read_json_optional(profile.manifest_path)
    if previous is None:
        existing: list[Mapping[str, Any]] = []
    elif isinstance(previous, dict) and isinstance(previous.get("images"), list):
        existing = [entry for entry in previous["images"] if isinstance(entry, dict)]
    else:
        raise ManifestInvalidError(
            f"Showcase manifest must be an object with an 'images' list: {profile.manifest_path}",
            profile.manifest_path,
        )

    summary = RunSummary()
    images = list_images(profile.input_dir)
    if not images:
        summary.notes.append(f"No showcase images found in {profile.input_dir}")

    builds = build_photos(create_builder(settings), images, profile, None, settings.workers)
    record_builds(summary, builds)
    fresh = [build.record for build in builds if build.record is not None]

    merged = merge_collection(fresh, existing, load_location_names(profile))
    store.save_document(profile.manifest_path, {"images": merged})
    summary.add(ItemResult.succeeded("collection", profile.name, f"{len(merged)} image(s)"))
    return summary


__all__ = ["load_location_names", "lookup_location", "merge_collection", "run_showcase"]
