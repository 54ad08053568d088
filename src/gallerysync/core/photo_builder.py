"""Combine variant generation and metadata extraction into photo records."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from ..config import DEFAULT_ASPECT_RATIO, ContentProfile, VariantPreset
from ..errors import ImageDecodeError
from ..io.metadata import MetadataReader, read_metadata_safely
from ..io.variants import ImageVariantGenerator, VariantOutcome
from ..models import ExifInfo, ItemResult, PhotoRecord, is_coordinate

LOGGER = logging.getLogger(__name__)

_EXIF_TIMESTAMP = re.compile(r"^(\d{4}):(\d{2}):(\d{2})[ T](\d{2}:\d{2}:\d{2})")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            if "/" in value:
                numerator, denominator = value.split("/", 1)
                return float(numerator) / float(denominator)
            return float(value)
        except (ValueError, ZeroDivisionError):
            return None
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# Display formatting -----------------------------------------------------------


def format_shutter_speed(value: Any) -> Optional[str]:
    """``"2s"`` for exposures of a second or more, ``"1/250s"`` otherwise."""

    seconds = _number(value)
    if not seconds or seconds <= 0:
        return None
    if seconds >= 1:
        return f"{seconds:g}s"
    return f"1/{_round_half_up(1 / seconds)}s"


def format_aperture(value: Any) -> Optional[str]:
    f_number = _number(value)
    if not f_number:
        return None
    return f"f/{f_number:g}"


def format_focal_length(value: Any) -> Optional[str]:
    focal = _number(value)
    if not focal:
        return None
    return f"{_round_half_up(focal)}mm"


def format_camera(make: Any, model: Any) -> Optional[str]:
    make_text, model_text = _text(make), _text(model)
    if make_text and model_text:
        return f"{make_text} {model_text}"
    return None


def format_date_taken(value: Any) -> Optional[str]:
    """Return an ISO-8601 timestamp for an EXIF ``YYYY:MM:DD HH:MM:SS`` value."""

    text = _text(value)
    if text is None:
        return None
    match = _EXIF_TIMESTAMP.match(text)
    if match:
        year, month, day, clock = match.groups()
        return f"{year}-{month}-{day}T{clock}"
    return text


def _iso(value: Any) -> Optional[int]:
    number = _number(value)
    if number is None or number <= 0:
        return None
    return int(number)


def build_exif(metadata: Mapping[str, Any]) -> ExifInfo:
    return ExifInfo(
        camera=format_camera(metadata.get("Make"), metadata.get("Model")),
        lens=_text(metadata.get("LensModel")),
        aperture=format_aperture(metadata.get("FNumber")),
        shutter_speed=format_shutter_speed(metadata.get("ExposureTime")),
        iso=_iso(metadata.get("ISO")),
        focal_length=format_focal_length(metadata.get("FocalLength")),
        date_taken=format_date_taken(metadata.get("DateTimeOriginal")),
        copyright=_text(metadata.get("Copyright")),
        artist=_text(metadata.get("Artist")),
        description=_text(metadata.get("ImageDescription")),
    )


# GPS ----------------------------------------------------------------------------


def dms_to_decimal(value: Any, ref: Any) -> Optional[float]:
    """Convert a degrees/minutes/seconds triple into signed decimal degrees."""

    if not isinstance(value, (list, tuple)) or not value:
        return None
    parts = [_number(part) for part in value]
    degrees = parts[0]
    if degrees is None:
        return None
    minutes = parts[1] if len(parts) > 1 and parts[1] is not None else 0.0
    seconds = parts[2] if len(parts) > 2 and parts[2] is not None else 0.0
    decimal = degrees + minutes / 60 + seconds / 3600
    if isinstance(ref, str) and ref.strip().upper() in ("S", "W"):
        decimal = -decimal
    return decimal


def resolve_gps(metadata: Mapping[str, Any]) -> tuple[Optional[float], Optional[float]]:
    """Return ``(lat, lng)`` from a tag record, preferring decimal coordinates."""

    lat, lng = metadata.get("latitude"), metadata.get("longitude")
    if is_coordinate(lat) and is_coordinate(lng):
        return float(lat), float(lng)
    if metadata.get("GPSLatitude") is not None and metadata.get("GPSLongitude") is not None:
        return (
            dms_to_decimal(metadata.get("GPSLatitude"), metadata.get("GPSLatitudeRef")),
            dms_to_decimal(metadata.get("GPSLongitude"), metadata.get("GPSLongitudeRef")),
        )
    return None, None


# Builder --------------------------------------------------------------------------


@dataclass(frozen=True)
class PhotoBuild:
    """A built record (``None`` when the source was unreadable) and its outcome."""

    source: Path
    record: Optional[PhotoRecord]
    result: ItemResult
    variants: tuple[VariantOutcome, ...] = ()

    @property
    def variant_failures(self) -> int:
        return sum(1 for outcome in self.variants if outcome.failed)


class PhotoRecordBuilder:
    """Turn one source image into a :class:`PhotoRecord` plus its variants."""

    def __init__(
        self,
        generator: ImageVariantGenerator,
        reader: MetadataReader,
        presets: Sequence[VariantPreset],
        *,
        force: bool = False,
    ) -> None:
        self._generator = generator
        self._reader = reader
        self._presets = tuple(presets)
        self._force = force

    def variant_filenames(self, base_name: str) -> list[str]:
        return [preset.filename(base_name) for preset in self._presets]

    def variant_path(self, web_base: str, name: str) -> str:
        for preset in self._presets:
            if preset.name == name:
                return f"{web_base}{preset.suffix}{preset.extension}"
        raise KeyError(f"No variant preset named {name!r}")

    def prefetch(self, sources: Sequence[Path]) -> None:
        """Let the metadata reader batch its work for *sources* up front."""

        self._reader.prefetch(sources)

    def build(
        self,
        source: Path,
        profile: ContentProfile,
        slug: Optional[str] = None,
        *,
        base_name: Optional[str] = None,
    ) -> PhotoBuild:
        """Build one photo; no exception escapes past this item."""

        try:
            return self._build(source, profile, slug, base_name or source.stem)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Skipping %s after unexpected error: %s", source, exc, exc_info=True)
            return PhotoBuild(source, None, ItemResult.failed("photo", source.name, f"{type(exc).__name__}: {exc}"))

    def _build(self, source: Path, profile: ContentProfile, slug: Optional[str], base_name: str) -> PhotoBuild:
        filename = source.name

        try:
            width, height = self._generator.probe(source)
        except ImageDecodeError as exc:
            LOGGER.warning("Skipping unreadable image %s: %s", source, exc.reason)
            return PhotoBuild(source, None, ItemResult.failed("photo", filename, exc.reason))

        metadata = read_metadata_safely(self._reader, source)

        try:
            outcomes = self._generator.generate(
                source,
                profile.variant_dir(slug),
                base_name,
                self._presets,
                force=self._force,
            )
        except ImageDecodeError as exc:
            LOGGER.warning("Skipping undecodable image %s: %s", source, exc.reason)
            return PhotoBuild(source, None, ItemResult.failed("photo", filename, exc.reason))

        lat, lng = resolve_gps(metadata)
        aspect_ratio = width / height if width and height else DEFAULT_ASPECT_RATIO
        web_base = profile.web_base(base_name, slug)
        large = self.variant_path(web_base, "large")
        record = PhotoRecord(
            filename=filename,
            path=large,
            path_large=large,
            path_small=self.variant_path(web_base, "small"),
            path_blur=self.variant_path(web_base, "blur"),
            width=width or None,
            height=height or None,
            aspect_ratio=aspect_ratio,
            lat=lat,
            lng=lng,
            exif=build_exif(metadata),
        )

        failed = [outcome.preset.name for outcome in outcomes if outcome.failed]
        if failed:
            result = ItemResult.succeeded("photo", filename, f"variants failed: {', '.join(failed)}")
        elif all(outcome.status == "exists" for outcome in outcomes):
            result = ItemResult.skipped("photo", filename, "variants up to date")
        else:
            result = ItemResult.succeeded("photo", filename)
        return PhotoBuild(source, record, result, tuple(outcomes))


__all__ = [
    "PhotoBuild",
    "PhotoRecordBuilder",
    "build_exif",
    "dms_to_decimal",
    "format_aperture",
    "format_camera",
    "format_date_taken",
    "format_focal_length",
    "format_shutter_speed",
    "resolve_gps",
]
