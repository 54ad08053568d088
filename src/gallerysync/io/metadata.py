"""Embedded metadata readers producing a flat tag record.

Two backends are available: Pillow's EXIF parser (default, no external tools)
and the ``exiftool`` CLI.  Both return the same keys so the photo record builder
does not care which one ran.
"""

from __future__ import annotations

import logging
from fractions import Fraction
import threading
from pathlib import Path
from typing import Any, Dict, Protocol, Sequence

from PIL import ExifTags, Image
from pillow_heif import register_heif_opener

from ..errors import ExternalToolError, ImageDecodeError
from ..utils import exiftool
from .variants import DECODE_ERRORS

LOGGER = logging.getLogger(__name__)

register_heif_opener()

_BASE_TAGS = {
    ExifTags.Base.Make: "Make",
    ExifTags.Base.Model: "Model",
    ExifTags.Base.Artist: "Artist",
    ExifTags.Base.Copyright: "Copyright",
    ExifTags.Base.ImageDescription: "ImageDescription",
}

_EXIF_TAGS = {
    ExifTags.Base.ExposureTime: "ExposureTime",
    ExifTags.Base.FNumber: "FNumber",
    ExifTags.Base.ISOSpeedRatings: "ISO",
    ExifTags.Base.DateTimeOriginal: "DateTimeOriginal",
    ExifTags.Base.FocalLength: "FocalLength",
    ExifTags.Base.LensModel: "LensModel",
}

_GPS_TAGS = {
    ExifTags.GPS.GPSLatitudeRef: "GPSLatitudeRef",
    ExifTags.GPS.GPSLatitude: "GPSLatitude",
    ExifTags.GPS.GPSLongitudeRef: "GPSLongitudeRef",
    ExifTags.GPS.GPSLongitude: "GPSLongitude",
}


class MetadataReader(Protocol):
    def prefetch(self, paths: Sequence[Path]) -> None:
        ...

    def read(self, path: Path) -> Dict[str, Any]:
        ...


def _coerce(value: Any) -> Any:
    """Turn Pillow's EXIF value types into plain JSON-friendly Python values."""

    if isinstance(value, bytes):
        value = value.decode("utf-8", "ignore")
    if isinstance(value, str):
        value = value.replace("\x00", "").strip()
        return value or None
    if isinstance(value, (tuple, list)):
        return [_coerce(item) for item in value]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    # ``IFDRational`` and ``Fraction`` both expose numerator/denominator.
    numerator = getattr(value, "numerator", None)
    denominator = getattr(value, "denominator", None)
    if numerator is not None and denominator is not None:
        if not denominator:
            return None
        return float(Fraction(numerator, denominator))
    return value


class PillowMetadataReader:
    """Read EXIF and GPS tags with Pillow."""

    def prefetch(self, paths: Sequence[Path]) -> None:
        """Pillow reads each file on demand."""

    def read(self, path: Path) -> Dict[str, Any]:
        try:
            with Image.open(path) as image:
                exif = image.getexif()
                record: Dict[str, Any] = {}
                for tag, name in _BASE_TAGS.items():
                    if tag in exif:
                        record[name] = _coerce(exif[tag])
                for ifd, names in ((ExifTags.IFD.Exif, _EXIF_TAGS), (ExifTags.IFD.GPSInfo, _GPS_TAGS)):
                    sub = exif.get_ifd(ifd)
                    for tag, name in names.items():
                        if tag in sub:
                            record[name] = _coerce(sub[tag])
        except DECODE_ERRORS as exc:
            raise ImageDecodeError(path, str(exc)) from exc

        iso = record.get("ISO")
        if isinstance(iso, list):
            record["ISO"] = iso[0] if iso else None
        return {key: value for key, value in record.items() if value is not None}


class ExiftoolMetadataReader:
    """Read tags through the ``exiftool`` CLI (``-n`` numeric output).

    :meth:`prefetch` reads a whole album with batched ``exiftool`` calls;
    :meth:`read` then serves those records and only launches ``exiftool`` for
    paths that were not prefetched.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def prefetch(self, paths: Sequence[Path]) -> None:
        if not paths:
            return
        try:
            records = exiftool.get_metadata_batch(list(paths))
        except ExternalToolError as exc:
            LOGGER.debug("Batched metadata read failed: %s", exc)
            return
        with self._lock:
            for record in records:
                source = record.get("SourceFile")
                if isinstance(source, str):
                    self._cache[str(Path(source))] = record

    def read(self, path: Path) -> Dict[str, Any]:
        with self._lock:
            raw = self._cache.pop(str(Path(path)), None)
        if raw is None:
            raw = exiftool.get_metadata(path)
        record = {
            key: value
            for key, value in raw.items()
            if key in exiftool.EXIFTOOL_TAGS and value not in (None, "")
        }
        # With ``-n`` exiftool already signs the coordinates by hemisphere.
        lat = record.pop("GPSLatitude", None)
        lng = record.pop("GPSLongitude", None)
        if isinstance(lat, (int, float)) and isinstance(lng, (int, float)):
            record["latitude"] = float(lat)
            record["longitude"] = float(lng)
        return record


def create_reader(backend: str) -> MetadataReader:
    if backend == "exiftool":
        return ExiftoolMetadataReader()
    return PillowMetadataReader()


def read_metadata_safely(reader: MetadataReader, path: Path) -> Dict[str, Any]:
    """Return the tag record for *path*, treating any extraction failure as empty."""

    try:
        return reader.read(path)
    except (ExternalToolError, ImageDecodeError) as exc:
        LOGGER.debug("Metadata extraction failed for %s: %s", path, exc)
        return {}


__all__ = [
    "ExiftoolMetadataReader",
    "MetadataReader",
    "PillowMetadataReader",
    "create_reader",
    "read_metadata_safely",
]
