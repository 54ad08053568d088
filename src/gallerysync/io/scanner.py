"""Discover album folders, their images and their override metadata."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from ..config import ALBUM_OVERRIDE_NAME, SUPPORTED_EXTENSIONS
from ..core.naming import album_slug
from ..errors import InputRootMissingError, ManifestInvalidError
from ..models import AlbumOverrides
from ..utils.jsonio import read_json

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AlbumSource:
    """A source directory that maps onto one album manifest."""

    folder_name: str
    slug: str
    path: Path
    images: list[Path] = field(default_factory=list)


def _is_hidden(path: Path) -> bool:
    return path.name.startswith((".", "_"))


def is_supported_image(path: Path) -> bool:
    return path.is_file() and not _is_hidden(path) and path.suffix.lower() in SUPPORTED_EXTENSIONS


def list_images(directory: Path) -> list[Path]:
    """Return the supported images directly inside *directory*, sorted by filename."""

    if not directory.is_dir():
        return []
    return sorted((p for p in directory.iterdir() if is_supported_image(p)), key=lambda p: p.name)


def iter_album_dirs(input_dir: Path) -> Iterator[Path]:
    if not input_dir.is_dir():
        raise InputRootMissingError(input_dir)
    for child in sorted(input_dir.iterdir(), key=lambda p: p.name):
        if child.is_dir() and not _is_hidden(child):
            yield child


def scan_albums(input_dir: Path) -> list[AlbumSource]:
    """Return every album folder below *input_dir* with its image list.

    Folders without supported images are still returned (with an empty list)
    so callers can report them as skipped.
    """

    albums: list[AlbumSource] = []
    seen: dict[str, str] = {}
    for folder in iter_album_dirs(input_dir):
        slug = album_slug(folder.name)
        if slug in seen:
            LOGGER.warning(
                "Folders %r and %r share the slug %r; the latter is ignored",
                seen[slug],
                folder.name,
                slug,
            )
            continue
        seen[slug] = folder.name
        albums.append(AlbumSource(folder.name, slug, folder, list_images(folder)))
    return albums


def read_overrides(album_dir: Path, default_title: str, name: str = ALBUM_OVERRIDE_NAME) -> AlbumOverrides:
    """Load the optional per-album override file.

    A malformed file is logged and ignored; the album then uses defaults.
    """

    path = album_dir / name
    overrides = AlbumOverrides()
    if path.exists():
        try:
            data = read_json(path)
        except ManifestInvalidError as exc:
            LOGGER.warning("Could not parse %s: %s", path, exc)
            data = None
        if isinstance(data, dict):
            overrides = AlbumOverrides.from_mapping(data, source=str(path))
            LOGGER.debug("Loaded override metadata from %s", path)
        elif data is not None:
            LOGGER.warning("Ignoring %s: expected a JSON object", path)

    if overrides.title is None:
        overrides.title = default_title
    return overrides


__all__ = ["AlbumSource", "is_supported_image", "iter_album_dirs", "list_images", "read_overrides", "scan_albums"]
