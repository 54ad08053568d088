"""Album-level records: override metadata and location data."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..config import DEFAULT_LOCATION_ACCURACY

LOGGER = logging.getLogger(__name__)


def is_coordinate(value: Any) -> bool:
    """Return ``True`` for a finite number usable as a latitude or longitude."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(slots=True)
class PrimaryLocation:
    """The single curated point an album is pinned to."""

    name: Optional[str]
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return is_coordinate(self.lat) and is_coordinate(self.lng)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "lat": self.lat, "lng": self.lng}

    @classmethod
    def from_mapping(cls, data: Any) -> Optional["PrimaryLocation"]:
        if not isinstance(data, Mapping):
            return None
        return cls(name=data.get("name"), lat=data.get("lat"), lng=data.get("lng"))


@dataclass(slots=True)
class AlbumLocationEntry:
    """One user-maintained row of ``album-locations.json``."""

    album_slug: str
    album_title: Optional[str]
    lat: Optional[float] = None
    lng: Optional[float] = None
    accuracy: str = DEFAULT_LOCATION_ACCURACY

    @property
    def has_coordinates(self) -> bool:
        return is_coordinate(self.lat) and is_coordinate(self.lng)

    def to_dict(self) -> dict[str, Any]:
        return {
            "albumSlug": self.album_slug,
            "albumTitle": self.album_title,
            "defaultLocation": {"lat": self.lat, "lng": self.lng, "accuracy": self.accuracy},
        }

    @classmethod
    def placeholder(cls, slug: str, title: Optional[str]) -> "AlbumLocationEntry":
        return cls(album_slug=slug, album_title=title)

    @classmethod
    def from_mapping(cls, slug: str, data: Any) -> Optional["AlbumLocationEntry"]:
        if not isinstance(data, Mapping):
            return None
        default = data.get("defaultLocation")
        if not isinstance(default, Mapping):
            default = {}
        return cls(
            album_slug=str(data.get("albumSlug") or slug),
            album_title=data.get("albumTitle"),
            lat=default.get("lat"),
            lng=default.get("lng"),
            accuracy=str(default.get("accuracy") or DEFAULT_LOCATION_ACCURACY),
        )


_OVERRIDE_KEYS = ("title", "description", "tags", "date", "cover", "isFavorite")


@dataclass(slots=True)
class AlbumOverrides:
    """Per-album metadata read from the optional ``_album.json`` file.

    ``provided`` records which keys were present in the file so an explicit
    ``null`` can be told apart from a missing key.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    date: Optional[str] = None
    cover: Optional[str] = None
    is_favorite: Optional[bool] = None
    provided: frozenset[str] = frozenset()

    def has(self, key: str) -> bool:
        return key in self.provided

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: str = "_album.json") -> "AlbumOverrides":
        provided = {key for key in _OVERRIDE_KEYS if key in data}

        tags: list[str] = []
        raw_tags = data.get("tags")
        if isinstance(raw_tags, list):
            tags = [str(tag) for tag in raw_tags if isinstance(tag, str) and tag.strip()]
        elif raw_tags is not None:
            LOGGER.warning("Ignoring non-list 'tags' in %s", source)
            provided.discard("tags")

        is_favorite = data.get("isFavorite")
        if is_favorite is not None and not isinstance(is_favorite, bool):
            LOGGER.warning("Ignoring non-boolean 'isFavorite' in %s", source)
            is_favorite = None
            provided.discard("isFavorite")

        def text(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None:
                return None
            if isinstance(value, (str, int, float)):
                return str(value)
            LOGGER.warning("Ignoring non-text %r in %s", key, source)
            provided.discard(key)
            return None

        title = text("title")
        description = text("description")
        date = text("date")
        cover = text("cover")
        return cls(
            title=title,
            description=description,
            tags=tags,
            date=date,
            cover=cover,
            is_favorite=is_favorite,
            provided=frozenset(provided),
        )


__all__ = ["AlbumLocationEntry", "AlbumOverrides", "PrimaryLocation", "is_coordinate"]
