"""High-level entry points used by the command line interface."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from .cache.manifest_store import ManifestStore
from .config import SETTINGS_FILE_NAME, PipelineSettings
from .errors import ConfigError
from .library.pipeline import init_locations, rebuild_index, run_import, sync_covers
from .library.hero import run_hero
from .library.showcase import run_showcase
from .models import ItemResult, RunSummary
from .utils.jsonio import read_json, write_json

LOGGER = logging.getLogger(__name__)


def load_settings(config_path: Optional[Path] = None, *, cwd: Optional[Path] = None) -> PipelineSettings:
    """Return settings from *config_path*, or from ``gallerysync.json`` in *cwd* if present.

    Relative directories in the file are resolved against the file's folder.
    Without any settings file the built-in defaults apply.
    """

    if config_path is None:
        candidate = (cwd or Path.cwd()) / SETTINGS_FILE_NAME
        if not candidate.exists():
            return PipelineSettings()
        config_path = candidate
    elif not config_path.exists():
        raise ConfigError(f"Settings file does not exist: {config_path}")

    data = read_json(config_path)
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file must contain a JSON object: {config_path}")
    LOGGER.debug("Loaded settings from %s", config_path)
    return PipelineSettings.from_mapping(data, base_dir=config_path.parent)


def _is_inside(path: Path, root: Path) -> bool:
    resolved, base = path.resolve(), root.resolve()
    return resolved != base and base in resolved.parents


def reset_gallery(
    settings: PipelineSettings,
    *,
    dry_run: bool = False,
    keep_variants: bool = False,
    root: Optional[Path] = None,
) -> RunSummary:
    """Delete derived manifests (and variants) and recreate empty indexes.

    Originals and ``album-locations.json`` are never touched.  Every target
    must live strictly inside *root* (the working directory by default).
    """

    root = root or Path.cwd()
    store = ManifestStore(settings.content_dir)
    targets = [store.albums_dir, store.album_index_path, store.geo_index_path]
    if not keep_variants:
        targets.append(settings.output_dir)

    for target in targets:
        if not _is_inside(target, root):
            raise ConfigError(f"Refusing to delete outside {root}: {target}")

    summary = RunSummary()
    for target in targets:
        if not target.exists():
            summary.add(ItemResult.skipped("reset", str(target), "not present"))
            continue
        if dry_run:
            LOGGER.info("Would delete %s", target)
            summary.add(ItemResult.skipped("reset", str(target), "dry run"))
            continue
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        LOGGER.info("Deleted %s", target)
        summary.add(ItemResult.succeeded("reset", str(target), "deleted"))

    if not dry_run:
        for path in (store.album_index_path, store.geo_index_path):
            write_json(path, {"albums": []})
        store.albums_dir.mkdir(parents=True, exist_ok=True)
        summary.notes.append("Recreated empty albums.json and map.json")
    return summary


__all__ = [
    "init_locations",
    "load_settings",
    "rebuild_index",
    "reset_gallery",
    "run_hero",
    "run_import",
    "run_showcase",
    "sync_covers",
]
