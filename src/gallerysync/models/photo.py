"""Photo records as produced by the photo record builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

# Attribute name -> manifest key, in the order they are serialised.
_EXIF_KEYS = (
    ("camera", "camera"),
    ("lens", "lens"),
    ("aperture", "aperture"),
    ("shutter_speed", "shutterSpeed"),
    ("iso", "iso"),
    ("focal_length", "focalLength"),
    ("date_taken", "dateTaken"),
    ("copyright", "copyright"),
    ("artist", "artist"),
    ("description", "description"),
)


def exif_is_populated(exif: Any) -> bool:
    """Return ``True`` when a persisted EXIF mapping holds at least one real value."""

    if not isinstance(exif, Mapping):
        return False
    return any(value not in (None, "") for value in exif.values())


@dataclass(slots=True)
class ExifInfo:
    """Display-ready EXIF fields for one photo."""

    camera: Optional[str] = None
    lens: Optional[str] = None
    aperture: Optional[str] = None
    shutter_speed: Optional[str] = None
    iso: Optional[int] = None
    focal_length: Optional[str] = None
    date_taken: Optional[str] = None
    copyright: Optional[str] = None
    artist: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in _EXIF_KEYS}


@dataclass(slots=True)
class PhotoRecord:
    """One source image's freshly derived record."""

    filename: str
    path: str
    path_large: str
    path_small: str
    path_blur: str
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: float = 1.5
    lat: Optional[float] = None
    lng: Optional[float] = None
    exif: ExifInfo = field(default_factory=ExifInfo)

    def to_dict(self) -> dict[str, Any]:
        """Return the manifest representation (camelCase keys)."""

        return {
            "filename": self.filename,
            "path": self.path,
            "pathLarge": self.path_large,
            "pathSmall": self.path_small,
            "pathBlur": self.path_blur,
            "lat": self.lat,
            "lng": self.lng,
            "width": self.width,
            "height": self.height,
            "aspectRatio": self.aspect_ratio,
            "exif": self.exif.to_dict(),
        }


__all__ = ["ExifInfo", "PhotoRecord", "exif_is_populated"]
