"""Derive the album index and the geo index from per-album manifests.

A handful of fields recorded in the previous album index are *pins*: values a
user set by hand in ``albums.json``.  They win over the freshly rebuilt
summary, and the favourite flag and cover are written back into the per-album
manifest so both documents agree afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..models import AlbumLocationEntry, PrimaryLocation, is_coordinate
from .dates import date_span, normalize_date

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexPins:
    """Manually pinned values for one slug, taken from the previous index."""

    cover: Optional[str] = None
    cover_aspect_ratio: Any = None
    primary_location: Optional[dict[str, Any]] = None
    is_favorite: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return self.cover is None and self.primary_location is None and self.is_favorite is None


def extract_pins(previous_entries: Iterable[Any]) -> dict[str, IndexPins]:
    pins: dict[str, IndexPins] = {}
    for entry in previous_entries:
        if not isinstance(entry, Mapping) or not isinstance(entry.get("slug"), str):
            continue
        pin = IndexPins()
        cover = entry.get("cover")
        if isinstance(cover, str) and cover:
            pin.cover = cover
            pin.cover_aspect_ratio = entry.get("coverAspectRatio")
        location = PrimaryLocation.from_mapping(entry.get("primaryLocation"))
        if location is not None and location.has_coordinates:
            pin.primary_location = dict(entry["primaryLocation"])
        if isinstance(entry.get("isFavorite"), bool):
            pin.is_favorite = entry["isFavorite"]
        if not pin.is_empty:
            pins[entry["slug"]] = pin
    return pins


def build_summary(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Return every album field except ``photos``."""

    summary = {key: value for key, value in manifest.items() if key != "photos"}
    if not isinstance(summary.get("tags"), list):
        summary["tags"] = []
    return summary


def _has_photo_path(manifest: Mapping[str, Any], path: str) -> bool:
    photos = manifest.get("photos")
    if not isinstance(photos, list):
        return False
    return any(
        isinstance(photo, Mapping) and path in (photo.get("path"), photo.get("pathLarge"))
        for photo in photos
    )


def apply_pins(summary: dict[str, Any], pins: Optional[IndexPins], manifest: dict[str, Any]) -> bool:
    """Overlay *pins* onto *summary*; return ``True`` when *manifest* was changed.

    The favourite flag and the cover are mirrored into *manifest*.  A cover
    pin that no longer names a photo of the album is dropped so the cover
    always points at an existing photo.
    """

    if pins is None:
        return False
    changed = False

    if pins.cover is not None:
        if _has_photo_path(manifest, pins.cover):
            summary["cover"] = pins.cover
            summary["coverAspectRatio"] = pins.cover_aspect_ratio
            if manifest.get("cover") != pins.cover or manifest.get("coverAspectRatio") != pins.cover_aspect_ratio:
                manifest["cover"] = pins.cover
                manifest["coverAspectRatio"] = pins.cover_aspect_ratio
                changed = True
        else:
            LOGGER.info("Dropping pinned cover %s for %s: photo not in album", pins.cover, summary.get("slug"))

    if pins.primary_location is not None:
        summary["primaryLocation"] = dict(pins.primary_location)

    if pins.is_favorite is not None:
        summary["isFavorite"] = pins.is_favorite
        if manifest.get("isFavorite") is not pins.is_favorite:
            manifest["isFavorite"] = pins.is_favorite
            changed = True
    return changed


def sort_summaries(summaries: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Newest ``date`` first, undated albums last, ties broken by title."""

    def title_key(summary: Mapping[str, Any]) -> str:
        title = summary.get("title")
        return title if isinstance(title, str) else ""

    def dated(summary: Mapping[str, Any]) -> bool:
        return isinstance(summary.get("date"), str) and bool(summary["date"])

    ordered = sorted(summaries, key=title_key)
    with_date = sorted((s for s in ordered if dated(s)), key=lambda s: s["date"], reverse=True)
    # ``sorted`` with reverse=True keeps equal keys in their original order,
    # so the title order survives inside each date.
    without_date = [s for s in ordered if not dated(s)]
    return with_date + without_date


def _valid_points(photos: Any) -> list[Mapping[str, Any]]:
    if not isinstance(photos, list):
        return []
    return [
        photo
        for photo in photos
        if isinstance(photo, Mapping) and is_coordinate(photo.get("lat")) and is_coordinate(photo.get("lng"))
    ]


def _photo_date(photo: Mapping[str, Any]) -> Optional[str]:
    exif = photo.get("exif")
    return normalize_date(exif.get("dateTaken")) if isinstance(exif, Mapping) else None


def geo_entry(
    summary: Mapping[str, Any],
    manifest: Mapping[str, Any],
    location: Optional[AlbumLocationEntry],
) -> Optional[dict[str, Any]]:
    """Return the geo index row for one album, or ``None`` when it has no coordinates."""

    points = _valid_points(manifest.get("photos"))
    if points:
        lat = sum(float(p["lat"]) for p in points) / len(points)
        lng = sum(float(p["lng"]) for p in points) / len(points)
        photo_count = len(points)
        start, end = date_span(_photo_date(p) for p in points)
    else:
        primary = PrimaryLocation.from_mapping(summary.get("primaryLocation"))
        if location is not None and location.has_coordinates:
            lat, lng = location.lat, location.lng
        elif primary is not None and primary.has_coordinates:
            lat, lng = primary.lat, primary.lng
        else:
            return None
        count = summary.get("count")
        photo_count = count if isinstance(count, int) else 0
        start, end = normalize_date(summary.get("startDate")), normalize_date(summary.get("endDate"))

    entry: dict[str, Any] = {
        "albumSlug": summary.get("slug"),
        "albumTitle": summary.get("title"),
        "lat": lat,
        "lng": lng,
        "photoCount": photo_count,
        "tags": list(summary.get("tags") or []),
    }
    if start and end:
        entry["dateRange"] = {"start": start, "end": end}
    return entry


def build_geo_index(
    summaries: Sequence[Mapping[str, Any]],
    manifests: Mapping[str, Mapping[str, Any]],
    locations: Mapping[str, AlbumLocationEntry],
) -> dict[str, list[dict[str, Any]]]:
    albums = []
    for summary in summaries:
        slug = summary.get("slug")
        entry = geo_entry(summary, manifests.get(slug, {}), locations.get(slug))
        if entry is None:
            LOGGER.debug("No coordinates for %s; omitted from the geo index", slug)
            continue
        albums.append(entry)
    return {"albums": albums}


@dataclass
class IndexBuild:
    """Output of :func:`rebuild_indexes`."""

    album_index: dict[str, list[dict[str, Any]]]
    geo_index: dict[str, list[dict[str, Any]]]
    updated_manifests: dict[str, dict[str, Any]]


def rebuild_indexes(
    manifests: Mapping[str, dict[str, Any]],
    previous_entries: Iterable[Any],
    locations: Mapping[str, AlbumLocationEntry],
) -> IndexBuild:
    """Build both index documents from the per-album *manifests*.

    Albums without photos are excluded.  Manifests changed by a pin
    write-back are returned in ``updated_manifests`` for the caller to save.
    """

    pins = extract_pins(previous_entries)
    summaries = []
    updated: dict[str, dict[str, Any]] = {}
    for slug, manifest in manifests.items():
        if not manifest.get("photos"):
            LOGGER.info("Album %s has no photos; left out of the index", slug)
            continue
        summary = build_summary(manifest)
        if apply_pins(summary, pins.get(slug), manifest):
            updated[slug] = manifest
        summaries.append(summary)

    ordered = sort_summaries(summaries)
    return IndexBuild(
        album_index={"albums": ordered},
        geo_index=build_geo_index(ordered, manifests, locations),
        updated_manifests=updated,
    )


__all__ = [
    "IndexBuild",
    "IndexPins",
    "apply_pins",
    "build_geo_index",
    "build_summary",
    "extract_pins",
    "geo_entry",
    "rebuild_indexes",
    "sort_summaries",
]
