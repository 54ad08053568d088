"""Process the hero grid images named in ``site/site.json``.

Each ``hero.grid.items[i].src`` is resolved to an original photo, rendered
through the shared photo builder as ``hero-{i}`` and the item is rewritten to
point at the variants.  Every other key of the site document and of the items
is kept as it was.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any, Optional

from ..cache.manifest_store import ManifestStore
from ..config import SUPPORTED_EXTENSIONS, ContentProfile, PipelineSettings
from ..core.photo_builder import PhotoRecordBuilder
from ..errors import ConfigError, ManifestInvalidError
from ..models import ItemResult, RunSummary
from ..utils.jsonio import read_json
from .pipeline import create_builder, record_builds

LOGGER = logging.getLogger(__name__)

_VARIANT_NAME = re.compile(r"-(large|small|blur)\.webp$", re.IGNORECASE)


def _is_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS


def _search_by_stem(root: Path, stem: str) -> Optional[Path]:
    if not root.is_dir():
        return None
    wanted = stem.lower()
    for candidate in sorted(root.rglob("*")):
        if candidate.stem.lower() == wanted and _is_image(candidate):
            return candidate
    return None


def find_hero_source(src: str, originals: Path) -> Optional[Path]:
    """Locate the original photo a hero ``src`` refers to.

    ``src`` may be a path inside the originals root (``Album/IMG_1.JPG``), a
    bare filename, a path to an existing file, or the web path of a processed
    variant (``photos/album/IMG_1-large.webp``), whose original is then looked
    up by base name.
    """

    name = PurePosixPath(src).name
    if _VARIANT_NAME.search(name):
        found = _search_by_stem(originals, _VARIANT_NAME.sub("", name))
        if found is not None:
            return found
    for candidate in (originals / src.lstrip("/"), originals / name, Path(src)):
        if _is_image(candidate):
            return candidate
    return _search_by_stem(originals, PurePosixPath(name).stem)


def hero_urls(builder: PhotoRecordBuilder, profile: ContentProfile, base_name: str) -> dict[str, str]:
    """The ``src``/``srcSmall``/``srcLarge`` values of a processed hero item."""

    web_base = profile.web_base(base_name)
    large = "/" + builder.variant_path(web_base, "large")
    return {"src": large, "srcSmall": "/" + builder.variant_path(web_base, "small"), "srcLarge": large}


def _variants_exist(builder: PhotoRecordBuilder, profile: ContentProfile, base_name: str) -> bool:
    return all((profile.output_dir / name).exists() for name in builder.variant_filenames(base_name))


def load_site_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Site config does not exist: {path}")
    data = read_json(path)
    if not isinstance(data, dict):
        raise ManifestInvalidError(f"Site config must be a JSON object: {path}", path)
    return data


def _grid_items(site: dict[str, Any]) -> Optional[list[Any]]:
    hero = site.get("hero")
    grid = hero.get("grid") if isinstance(hero, dict) else None
    items = grid.get("items") if isinstance(grid, dict) else None
    return items if isinstance(items, list) else None


def run_hero(settings: PipelineSettings, *, builder: Optional[PhotoRecordBuilder] = None) -> RunSummary:
    profile = settings.hero_profile()
    site = load_site_config(profile.manifest_path)
    summary = RunSummary()

    items = _grid_items(site)
    if not items:
        summary.notes.append(f"No hero grid items in {profile.manifest_path}")
        return summary

    builder = builder or create_builder(settings)
    updated: list[Any] = []
    for position, item in enumerate(items, start=1):
        base_name = f"hero-{position}"
        src = item.get("src") if isinstance(item, dict) else None
        if not isinstance(src, str) or not src:
            LOGGER.warning("Hero item %d has no src", position)
            summary.add(ItemResult.skipped("photo", base_name, "no src"))
            updated.append(item)
            continue

        urls = hero_urls(builder, profile, base_name)
        if not settings.force and src == urls["src"] and _variants_exist(builder, profile, base_name):
            summary.add(ItemResult.skipped("photo", src, "variants up to date"))
            updated.append(item)
            continue

        source = find_hero_source(src, profile.input_dir)
        if source is None:
            LOGGER.error("Could not find a source photo for hero item %d: %s", position, src)
            summary.add(ItemResult.failed("photo", src, "source not found"))
            updated.append(item)
            continue

        LOGGER.info("Processing hero item %d from %s", position, source)
        build = builder.build(source, profile, None, base_name=base_name)
        record_builds(summary, [build])
        if build.record is None:
            updated.append(item)
            continue
        updated.append({**item, **urls})

    if updated != items:
        site["hero"]["grid"]["items"] = updated
        ManifestStore(settings.content_dir).save_document(profile.manifest_path, site)
        LOGGER.info("Updated %s", profile.manifest_path)
    return summary


__all__ = ["find_hero_source", "hero_urls", "load_site_config", "run_hero"]
