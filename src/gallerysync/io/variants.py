"""Resized WebP variant generation with Pillow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from ..config import VariantPreset
from ..errors import ImageDecodeError, VariantError

LOGGER = logging.getLogger(__name__)

register_heif_opener()

# Errors Pillow raises for sources it cannot (or refuses to) decode.
DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
)


@dataclass(frozen=True)
class VariantOutcome:
    """What happened to one requested variant."""

    preset: VariantPreset
    path: Path
    status: str  # "created", "exists" or "failed"
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


def _open_oriented(path: Path) -> Image.Image:
    try:
        with Image.open(path) as source:
            source.load()
            return ImageOps.exif_transpose(source)
    except DECODE_ERRORS as exc:
        raise ImageDecodeError(path, str(exc)) from exc


def _web_mode(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image
    if image.mode in ("LA", "PA") or (image.mode == "P" and "transparency" in image.info):
        return image.convert("RGBA")
    return image.convert("RGB")


class ImageVariantGenerator:
    """Produce longest-side resized, WebP-encoded renditions of a source image."""

    def probe(self, path: Path) -> tuple[int, int]:
        """Return the display (orientation-corrected) size of *path*."""

        try:
            with Image.open(path) as image:
                width, height = image.size
                orientation = image.getexif().get(ExifTags.Base.Orientation, 1)
        except DECODE_ERRORS as exc:
            raise ImageDecodeError(path, str(exc)) from exc
        # Orientations 5-8 rotate by 90 degrees, so the displayed size is swapped.
        if orientation in (5, 6, 7, 8):
            return height, width
        return width, height

    def render(self, image: Image.Image, preset: VariantPreset, destination: Path) -> None:
        """Encode *image* at *preset* into *destination*, never upscaling."""

        variant = _web_mode(image.copy())
        tmp_path = destination.with_name(destination.name + ".tmp")
        try:
            variant.thumbnail((preset.max_size, preset.max_size), Image.Resampling.LANCZOS)
            destination.parent.mkdir(parents=True, exist_ok=True)
            variant.save(tmp_path, format=preset.format, quality=preset.quality)
            tmp_path.replace(destination)
        except (OSError, ValueError) as exc:
            tmp_path.unlink(missing_ok=True)
            raise VariantError(preset.name, destination, str(exc)) from exc
        finally:
            variant.close()

    def generate(
        self,
        source: Path,
        destination_dir: Path,
        base_name: str,
        presets: Iterable[VariantPreset],
        *,
        force: bool = False,
    ) -> list[VariantOutcome]:
        """Create every missing variant of *source* (all of them when *force*).

        A failing variant is reported in the returned outcomes and does not stop
        the remaining ones. :class:`ImageDecodeError` is raised only when the
        source itself cannot be decoded.
        """

        outcomes: list[VariantOutcome] = []
        pending: list[tuple[VariantPreset, Path]] = []
        for preset in presets:
            target = destination_dir / preset.filename(base_name)
            if target.exists() and not force:
                outcomes.append(VariantOutcome(preset, target, "exists"))
            else:
                pending.append((preset, target))

        if not pending:
            return outcomes

        image = _open_oriented(source)
        try:
            for preset, target in pending:
                try:
                    self.render(image, preset, target)
                except VariantError as exc:
                    LOGGER.error("%s", exc)
                    outcomes.append(VariantOutcome(preset, target, "failed", exc.reason))
                else:
                    outcomes.append(VariantOutcome(preset, target, "created"))
        finally:
            image.close()
        return outcomes


__all__ = ["DECODE_ERRORS", "ImageVariantGenerator", "VariantOutcome"]
