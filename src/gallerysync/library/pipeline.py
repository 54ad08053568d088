"""Orchestrate a full import: scan, build, reconcile, persist and index.

Albums are processed strictly one after another.  Inside an album the
per-photo work (decode, metadata, variants) runs on a small thread pool whose
size is capped by ``PipelineSettings.workers``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from ..cache.manifest_store import ManifestStore
from ..config import ContentProfile, PipelineSettings
from ..core.index_builder import rebuild_indexes
from ..core.location import resolve_primary_location
from ..core.naming import album_slug
from ..core.photo_builder import PhotoBuild, PhotoRecordBuilder
from ..core.reconciler import reconcile_album, resolve_title
from ..errors import ConfigError, ManifestInvalidError
from ..io.metadata import create_reader
from ..io.scanner import AlbumSource, iter_album_dirs, read_overrides, scan_albums
from ..io.variants import ImageVariantGenerator
from ..models import AlbumLocationEntry, ItemResult, RunSummary

LOGGER = logging.getLogger(__name__)


def create_builder(settings: PipelineSettings) -> PhotoRecordBuilder:
    return PhotoRecordBuilder(
        ImageVariantGenerator(),
        create_reader(settings.metadata_backend),
        settings.variants,
        force=settings.force,
    )


def build_photos(
    builder: PhotoRecordBuilder,
    images: Sequence[Path],
    profile: ContentProfile,
    slug: Optional[str],
    workers: int,
) -> list[PhotoBuild]:
    """Build every image concurrently; results come back in *images* order."""

    if not images:
        return []
    builder.prefetch(images)
    if workers <= 1 or len(images) == 1:
        return [builder.build(image, profile, slug) for image in images]
    with ThreadPoolExecutor(max_workers=min(workers, len(images))) as executor:
        return list(executor.map(lambda image: builder.build(image, profile, slug), images))


def record_builds(summary: RunSummary, builds: Sequence[PhotoBuild]) -> None:
    for build in builds:
        summary.add(build.result)
        summary.variant_failures += build.variant_failures


@dataclass
class AlbumOutcome:
    """The manifest written for one album (``None`` when nothing was written)."""

    source: AlbumSource
    manifest: Optional[dict[str, Any]]
    result: ItemResult


class ImportPipeline:
    """Run the album import for one :class:`PipelineSettings` instance."""

    def __init__(self, settings: PipelineSettings, *, builder: Optional[PhotoRecordBuilder] = None) -> None:
        self.settings = settings
        self.store = ManifestStore(settings.content_dir)
        self.profile = settings.album_profile()
        self.builder = builder or create_builder(settings)
        self.locations: dict[str, AlbumLocationEntry] = {}
        self.previous_index: list[dict[str, Any]] = []

    def preflight(self) -> list[AlbumSource]:
        """Validate every fatal precondition before anything is written."""

        albums = scan_albums(self.settings.input_dir)
        self.previous_index = self.store.load_album_index()
        self.locations = self.store.load_album_locations()
        return albums

    def process_album(self, source: AlbumSource, summary: RunSummary) -> AlbumOutcome:
        slug = source.slug
        try:
            previous = self.store.load_album(slug)
        except ManifestInvalidError as exc:
            LOGGER.error("Leaving album %s untouched: %s", slug, exc)
            return AlbumOutcome(source, None, ItemResult.failed("album", slug, str(exc)))

        if not source.images:
            LOGGER.warning("Album folder %s contains no supported images", source.path)
            return AlbumOutcome(source, None, ItemResult.skipped("album", slug, "no supported images"))

        LOGGER.info("Processing album %s (%d image(s))", slug, len(source.images))
        overrides = read_overrides(source.path, source.folder_name, self.profile.metadata_file)
        builds = build_photos(self.builder, source.images, self.profile, slug, self.settings.workers)
        record_builds(summary, builds)
        fresh = [build.record for build in builds if build.record is not None]

        if not fresh and previous is None:
            return AlbumOutcome(source, None, ItemResult.failed("album", slug, "no readable images"))

        location = resolve_primary_location(
            slug,
            resolve_title(slug, overrides, previous or {}),
            self.locations,
            (previous or {}).get("primaryLocation"),
        )
        manifest = reconcile_album(slug, fresh, previous, overrides, location)
        self.store.save_album(slug, manifest)

        skipped = len(source.images) - len(fresh)
        detail = f"{len(fresh)} photo(s)" + (f", {skipped} unreadable" if skipped else "")
        return AlbumOutcome(source, manifest, ItemResult.succeeded("album", slug, detail))

    def run(self) -> RunSummary:
        summary = RunSummary()
        albums = self.preflight()
        if not albums:
            summary.notes.append(f"No album folders found in {self.settings.input_dir}")

        reconciled: list[tuple[str, Optional[str]]] = []
        for source in albums:
            outcome = self.process_album(source, summary)
            summary.add(outcome.result)
            if outcome.manifest is not None:
                reconciled.append((source.slug, outcome.manifest.get("title")))

        added = self.store.ensure_album_locations(reconciled)
        if added:
            summary.notes.append(f"Added {len(added)} album(s) to album-locations.json")
            self.locations = self.store.load_album_locations()

        summary.merge(write_indexes(self.store, self.previous_index, self.locations))
        return summary


def write_indexes(
    store: ManifestStore,
    previous_index: list[dict[str, Any]],
    locations: dict[str, AlbumLocationEntry],
) -> RunSummary:
    """Rebuild ``albums.json`` and ``map.json`` from the stored manifests."""

    summary = RunSummary()
    build = rebuild_indexes(store.load_all_albums(), previous_index, locations)
    for slug, manifest in build.updated_manifests.items():
        store.save_album(slug, manifest)
        LOGGER.info("Synced pinned index values back into %s", store.album_path(slug))
    store.save_album_index(build.album_index)
    store.save_geo_index(build.geo_index)
    albums = build.album_index["albums"]
    summary.add(ItemResult.succeeded("index", store.album_index_path.name, f"{len(albums)} album(s)"))
    summary.add(
        ItemResult.succeeded("index", store.geo_index_path.name, f"{len(build.geo_index['albums'])} album(s)")
    )
    return summary


def run_import(settings: PipelineSettings) -> RunSummary:
    return ImportPipeline(settings).run()


def rebuild_index(settings: PipelineSettings) -> RunSummary:
    """Rebuild both indexes from already persisted manifests."""

    store = ManifestStore(settings.content_dir)
    if not store.albums_dir.is_dir():
        raise ConfigError(f"Albums directory does not exist: {store.albums_dir}")
    previous_index = store.load_album_index()
    locations = store.load_album_locations()
    return write_indexes(store, previous_index, locations)


def init_locations(settings: PipelineSettings) -> RunSummary:
    """Add placeholder ``album-locations.json`` entries for every album folder."""

    store = ManifestStore(settings.content_dir)
    summary = RunSummary()
    pairs = []
    for folder in iter_album_dirs(settings.input_dir):
        pairs.append((album_slug(folder.name), read_overrides(folder, folder.name).title))
    added = set(store.ensure_album_locations(pairs))
    for slug, _title in pairs:
        if slug in added:
            summary.add(ItemResult.succeeded("location", slug, "placeholder added"))
        else:
            summary.add(ItemResult.skipped("location", slug, "already configured"))
    return summary


def sync_covers(settings: PipelineSettings) -> RunSummary:
    """Copy ``cover``/``coverAspectRatio`` from ``albums.json`` into each manifest."""

    store = ManifestStore(settings.content_dir)
    summary = RunSummary()
    entries = {entry.get("slug"): entry for entry in store.load_album_index() if isinstance(entry.get("slug"), str)}
    for slug in store.album_slugs():
        entry = entries.get(slug)
        if entry is None:
            summary.add(ItemResult.skipped("album", slug, "not in album index"))
            continue
        try:
            manifest = store.load_album(slug)
        except ManifestInvalidError as exc:
            LOGGER.warning("Skipping %s: %s", slug, exc)
            summary.add(ItemResult.failed("album", slug, str(exc)))
            continue
        if manifest is None:
            continue
        cover, ratio = entry.get("cover"), entry.get("coverAspectRatio")
        if not isinstance(cover, str) or not cover:
            summary.add(ItemResult.skipped("album", slug, "no cover in album index"))
            continue
        if manifest.get("cover") == cover and manifest.get("coverAspectRatio") == ratio:
            summary.add(ItemResult.skipped("album", slug, "cover already in sync"))
            continue
        manifest["cover"] = cover
        manifest["coverAspectRatio"] = ratio
        store.save_album(slug, manifest)
        summary.add(ItemResult.succeeded("album", slug, f"cover set to {cover}"))
    return summary


__all__ = [
    "AlbumOutcome",
    "ImportPipeline",
    "build_photos",
    "create_builder",
    "init_locations",
    "rebuild_index",
    "run_import",
    "sync_covers",
    "write_indexes",
]
