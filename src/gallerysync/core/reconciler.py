"""Merge freshly built photo records with previously persisted manifests.

Every function here is pure: callers load the previous manifest, call
:func:`reconcile_album` and persist whatever comes back.  Fields fall into
three groups:

* geometry and variant paths are always taken from the fresh scan;
* GPS is taken from the fresh scan only when it yields a value;
* EXIF, cover, dates, favourites and descriptions prefer what the user (or an
  earlier run) already stored.

Photos that only exist in the previous manifest are kept, never dropped.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ..models import AlbumOverrides, PhotoRecord, PrimaryLocation, exif_is_populated
from .dates import date_span, normalize_date

PhotoLike = Union[PhotoRecord, Mapping[str, Any]]

# Keys the reconciler computes for an album; anything else found in a previous
# manifest is carried through untouched.
ALBUM_KEYS = (
    "id",
    "slug",
    "title",
    "description",
    "date",
    "startDate",
    "endDate",
    "tags",
    "cover",
    "coverAspectRatio",
    "count",
    "isFavorite",
    "primaryLocation",
    "photos",
)


def _as_dict(photo: PhotoLike) -> dict[str, Any]:
    if isinstance(photo, PhotoRecord):
        return photo.to_dict()
    return dict(photo)


def _text_key(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return None


def photo_key(photo: Mapping[str, Any]) -> Optional[str]:
    """Return the case-insensitive identity of *photo*.

    The large variant path is preferred, then the generic path, then the
    filename.
    """

    for field_name in ("pathLarge", "path", "filename"):
        key = _text_key(photo.get(field_name))
        if key is not None:
            return key
    return None


class _PreviousPhotos:
    """Lookup of previous photo records by identity (and by filename as a fallback)."""

    def __init__(self, photos: Iterable[Any]) -> None:
        self.entries: list[Mapping[str, Any]] = [p for p in photos if isinstance(p, Mapping)]
        self._by_key: dict[str, int] = {}
        self._by_name: dict[str, int] = {}
        for position, photo in enumerate(self.entries):
            key = photo_key(photo)
            if key is not None:
                self._by_key.setdefault(key, position)
            name = _text_key(photo.get("filename"))
            if name is not None:
                self._by_name.setdefault(name, position)
        self.used: set[int] = set()

    def match(self, fresh: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
        candidates = (
            self._by_key.get(photo_key(fresh) or ""),
            self._by_name.get(_text_key(fresh.get("filename")) or ""),
        )
        for position in candidates:
            if position is not None and position not in self.used:
                self.used.add(position)
                return self.entries[position]
        return None

    def orphans(self) -> list[dict[str, Any]]:
        return [dict(photo) for position, photo in enumerate(self.entries) if position not in self.used]


def merge_photo(fresh: PhotoLike, previous: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge one fresh photo record with its previous counterpart."""

    merged = _as_dict(fresh)
    if previous is None:
        return merged

    for axis in ("lat", "lng"):
        if merged.get(axis) is None:
            merged[axis] = previous.get(axis)

    previous_exif = previous.get("exif")
    if exif_is_populated(previous_exif):
        merged["exif"] = dict(previous_exif)

    for key, value in previous.items():
        if key not in merged:
            merged[key] = value
    return merged


def reconcile_photos(fresh: Sequence[PhotoLike], previous: Optional[Iterable[Any]]) -> list[dict[str, Any]]:
    """Return the merged photo list: fresh order first, previous-only photos appended."""

    lookup = _PreviousPhotos(previous or ())
    merged = []
    for photo in fresh:
        record = _as_dict(photo)
        merged.append(merge_photo(record, lookup.match(record)))
    merged.extend(lookup.orphans())
    return merged


def _find_photo(photos: Sequence[Mapping[str, Any]], reference: Any) -> Optional[Mapping[str, Any]]:
    """Return the photo whose filename or path equals *reference*.

    An exact match wins over a case-insensitive one.
    """

    if not isinstance(reference, str) or not reference.strip():
        return None
    fields = ("filename", "path", "pathLarge")
    for photo in photos:
        if any(photo.get(name) == reference for name in fields):
            return photo
    folded = reference.strip().lower()
    for photo in photos:
        if any(_text_key(photo.get(name)) == folded for name in fields):
            return photo
    return None


def _cover_path(photo: Mapping[str, Any]) -> Optional[str]:
    return photo.get("path") or photo.get("pathLarge")


def resolve_cover(
    photos: Sequence[Mapping[str, Any]],
    overrides: Optional[AlbumOverrides],
    previous: Optional[Mapping[str, Any]],
) -> tuple[Optional[str], Optional[float]]:
    """Return ``(cover, coverAspectRatio)`` for the merged *photos*."""

    if not photos:
        return None, None

    if overrides is not None and overrides.cover:
        photo = _find_photo(photos, overrides.cover)
        if photo is not None:
            return _cover_path(photo), photo.get("aspectRatio")

    if previous is not None:
        previous_cover = previous.get("cover")
        photo = _find_photo(photos, previous_cover)
        if photo is not None:
            return previous_cover, photo.get("aspectRatio")

    first = photos[0]
    return _cover_path(first), first.get("aspectRatio")


def _photo_date(photo: Mapping[str, Any]) -> Optional[str]:
    exif = photo.get("exif")
    if isinstance(exif, Mapping):
        return normalize_date(exif.get("dateTaken"))
    return None


def resolve_dates(
    photos: Sequence[Mapping[str, Any]],
    overrides: Optional[AlbumOverrides],
    previous: Optional[Mapping[str, Any]],
) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """Return ``(date, startDate, endDate)``; previously stored values win."""

    previous = previous or {}

    album_date = previous.get("date") or None
    if album_date is None and overrides is not None and overrides.date:
        album_date = normalize_date(overrides.date) or overrides.date
    if album_date is None and photos:
        album_date = _photo_date(photos[0])

    start, end = date_span(_photo_date(photo) for photo in photos)
    return album_date, previous.get("startDate") or start, previous.get("endDate") or end


def camera_brands(photos: Iterable[Mapping[str, Any]]) -> list[str]:
    """Return the first word of every distinct camera string, in first-seen order."""

    brands: list[str] = []
    seen_cameras: set[str] = set()
    for photo in photos:
        exif = photo.get("exif")
        camera = exif.get("camera") if isinstance(exif, Mapping) else None
        if not isinstance(camera, str) or not camera.strip() or camera in seen_cameras:
            continue
        seen_cameras.add(camera)
        brand = camera.split()[0]
        if brand not in brands:
            brands.append(brand)
    return brands


def resolve_tags(
    photos: Sequence[Mapping[str, Any]],
    overrides: Optional[AlbumOverrides],
    previous: Optional[Mapping[str, Any]],
) -> list[str]:
    if previous is not None:
        base = previous.get("tags")
        base = base if isinstance(base, list) else []
    else:
        base = overrides.tags if overrides is not None else []

    tags: list[str] = []
    for tag in [*base, *camera_brands(photos)]:
        if isinstance(tag, str) and tag and tag not in tags:
            tags.append(tag)
    return tags


def resolve_title(slug: str, overrides: Optional[AlbumOverrides], previous: Mapping[str, Any]) -> Optional[str]:
    """Explicit override title, then the previous title, then the folder name."""

    if overrides is not None and overrides.has("title") and overrides.title:
        return overrides.title
    if previous.get("title"):
        return previous["title"]
    if overrides is not None and overrides.title:
        return overrides.title
    return slug


def reconcile_album(
    slug: str,
    fresh_photos: Sequence[PhotoLike],
    previous: Optional[Mapping[str, Any]],
    overrides: Optional[AlbumOverrides],
    primary_location: Optional[PrimaryLocation],
) -> dict[str, Any]:
    """Return the complete manifest for *slug* after merging this run's scan.

    ``count`` always equals ``len(photos)`` and ``cover`` always points at one
    of the merged photos (or is ``None`` when there are none).
    """

    prior: Mapping[str, Any] = previous or {}
    photos = reconcile_photos(fresh_photos, prior.get("photos") if previous is not None else None)
    cover, cover_ratio = resolve_cover(photos, overrides, previous)
    album_date, start_date, end_date = resolve_dates(photos, overrides, previous)

    if overrides is not None and overrides.has("description"):
        description = overrides.description
    else:
        description = prior.get("description")

    manifest: dict[str, Any] = {
        "id": slug,
        "slug": slug,
        "title": resolve_title(slug, overrides, prior),
        "description": description,
        "date": album_date,
        "startDate": start_date,
        "endDate": end_date,
        "tags": resolve_tags(photos, overrides, previous),
        "cover": cover,
        "coverAspectRatio": cover_ratio,
        "count": len(photos),
    }

    if overrides is not None and overrides.has("isFavorite") and overrides.is_favorite is not None:
        manifest["isFavorite"] = overrides.is_favorite
    elif isinstance(prior.get("isFavorite"), bool):
        manifest["isFavorite"] = prior["isFavorite"]

    if primary_location is not None:
        manifest["primaryLocation"] = primary_location.to_dict()
    elif "primaryLocation" in prior:
        manifest["primaryLocation"] = prior["primaryLocation"]

    for key, value in prior.items():
        if key not in ALBUM_KEYS and key not in manifest:
            manifest[key] = value

    manifest["photos"] = photos
    return manifest


__all__ = [
    "ALBUM_KEYS",
    "camera_brands",
    "merge_photo",
    "photo_key",
    "reconcile_album",
    "reconcile_photos",
    "resolve_cover",
    "resolve_dates",
    "resolve_tags",
    "resolve_title",
]
