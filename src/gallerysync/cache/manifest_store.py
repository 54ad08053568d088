"""Durable storage for the JSON documents under the content root.

The store is the single write gateway for manifests.  Each document is built
completely in memory and written once through :func:`atomic_write_text`, so a
crash never leaves a half-written file behind.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from ..config import ALBUM_INDEX_NAME, ALBUM_LOCATIONS_NAME, ALBUMS_DIR_NAME, GEO_INDEX_NAME
from ..errors import ManifestInvalidError
from ..models import AlbumLocationEntry
from ..utils.jsonio import read_json_optional, write_json

LOGGER = logging.getLogger(__name__)


class ManifestStore:
    """Read and write album manifests, the indexes and ``album-locations.json``."""

    def __init__(self, content_dir: Path) -> None:
        self.content_dir = Path(content_dir)

    # Paths ------------------------------------------------------------------------

    @property
    def albums_dir(self) -> Path:
        return self.content_dir / ALBUMS_DIR_NAME

    @property
    def album_index_path(self) -> Path:
        return self.content_dir / ALBUM_INDEX_NAME

    @property
    def geo_index_path(self) -> Path:
        return self.content_dir / GEO_INDEX_NAME

    @property
    def album_locations_path(self) -> Path:
        return self.content_dir / ALBUM_LOCATIONS_NAME

    def album_path(self, slug: str) -> Path:
        return self.albums_dir / f"{slug}.json"

    # Per-album manifests ------------------------------------------------------------

    def load_album(self, slug: str) -> Optional[dict[str, Any]]:
        """Return the stored manifest for *slug*, or ``None`` when there is none.

        Raises a non-fatal :class:`ManifestInvalidError` for an unreadable
        manifest so the caller can skip that album without touching its file.
        """

        path = self.album_path(slug)
        try:
            data = read_json_optional(path)
        except ManifestInvalidError as exc:
            raise ManifestInvalidError(str(exc), path, fatal=False) from exc
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ManifestInvalidError(f"Album manifest is not a JSON object: {path}", path, fatal=False)
        return data

    def save_album(self, slug: str, manifest: dict[str, Any]) -> Path:
        path = self.album_path(slug)
        write_json(path, manifest)
        LOGGER.debug("Wrote %s", path)
        return path

    def album_slugs(self) -> list[str]:
        if not self.albums_dir.is_dir():
            return []
        return sorted(path.stem for path in self.albums_dir.glob("*.json") if not path.name.startswith("."))

    def load_all_albums(self) -> dict[str, dict[str, Any]]:
        """Return every readable manifest keyed by slug; unreadable ones are logged and skipped."""

        manifests: dict[str, dict[str, Any]] = {}
        for slug in self.album_slugs():
            try:
                manifest = self.load_album(slug)
            except ManifestInvalidError as exc:
                LOGGER.warning("Skipping unreadable album manifest: %s", exc)
                continue
            if manifest is None:
                continue
            stored_slug = manifest.get("slug")
            manifests[stored_slug if isinstance(stored_slug, str) and stored_slug else slug] = manifest
        return manifests

    # Indexes ------------------------------------------------------------------------

    def _load_index(self, path: Path, label: str) -> list[dict[str, Any]]:
        data = read_json_optional(path)
        if data is None:
            return []
        albums = data.get("albums") if isinstance(data, dict) else None
        if not isinstance(albums, list):
            raise ManifestInvalidError(f"{label} must be an object with an 'albums' list: {path}", path)
        return [entry for entry in albums if isinstance(entry, dict)]

    def load_album_index(self) -> list[dict[str, Any]]:
        """Return the entries of the previous album index (empty when absent).

        A present but malformed index is fatal: its pins cannot be honoured.
        """

        return self._load_index(self.album_index_path, "Album index")

    def save_album_index(self, document: dict[str, Any]) -> Path:
        write_json(self.album_index_path, document)
        return self.album_index_path

    def save_geo_index(self, document: dict[str, Any]) -> Path:
        write_json(self.geo_index_path, document)
        return self.geo_index_path

    # album-locations.json -------------------------------------------------------------

    def load_album_locations_raw(self) -> dict[str, Any]:
        data = read_json_optional(self.album_locations_path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ManifestInvalidError(
                f"Album locations must be an object keyed by album slug: {self.album_locations_path}",
                self.album_locations_path,
            )
        return data

    def load_album_locations(self) -> dict[str, AlbumLocationEntry]:
        entries: dict[str, AlbumLocationEntry] = {}
        for slug, value in self.load_album_locations_raw().items():
            entry = AlbumLocationEntry.from_mapping(slug, value)
            if entry is None:
                LOGGER.warning("Ignoring malformed album location entry %r", slug)
                continue
            entries[slug] = entry
        return entries

    def ensure_album_locations(self, albums: Iterable[tuple[str, Optional[str]]]) -> list[str]:
        """Add placeholder entries for unseen ``(slug, title)`` pairs.

        Existing entries are never modified.  The file is written only when
        something was added; the added slugs are returned.
        """

        document = self.load_album_locations_raw()
        added: list[str] = []
        for slug, title in albums:
            if slug in document:
                continue
            document[slug] = AlbumLocationEntry.placeholder(slug, title).to_dict()
            added.append(slug)
        if added:
            write_json(self.album_locations_path, document)
            LOGGER.info("Added %d album(s) to %s", len(added), self.album_locations_path)
        return added

    # Generic ------------------------------------------------------------------------

    def save_document(self, path: Path, document: Any) -> Path:
        write_json(path, document)
        return path


__all__ = ["ManifestStore"]
