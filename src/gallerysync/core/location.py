"""Resolve the single curated location an album is pinned to."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..models import AlbumLocationEntry, PrimaryLocation

LOGGER = logging.getLogger(__name__)


def resolve_primary_location(
    slug: str,
    title: Optional[str],
    locations: Mapping[str, AlbumLocationEntry],
    previous_location: Any = None,
) -> PrimaryLocation:
    """Return the album's primary location using the first applicable source.

    1. a previously stored location with numeric coordinates (a manual pin);
    2. the album's ``album-locations.json`` default, when both coordinates are set;
    3. a placeholder carrying only the title.

    Per-photo GPS is deliberately not consulted; it feeds the geo index only.
    """

    previous = PrimaryLocation.from_mapping(previous_location)
    if previous is not None and previous.has_coordinates:
        if previous.name is None:
            previous.name = title
        return previous

    entry = locations.get(slug)
    if entry is not None and entry.has_coordinates:
        LOGGER.debug("Using album-locations.json coordinates for %s", slug)
        return PrimaryLocation(name=entry.album_title or title, lat=entry.lat, lng=entry.lng)

    return PrimaryLocation(name=title)


__all__ = ["resolve_primary_location"]
