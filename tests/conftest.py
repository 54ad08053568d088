import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from PIL import ExifTags, Image  # noqa: E402


def make_jpeg(
    path: Path,
    size: tuple[int, int] = (60, 40),
    *,
    make: Optional[str] = None,
    model: Optional[str] = None,
    taken: Optional[str] = None,
    gps: Optional[tuple[float, float]] = None,
    color: str = "red",
) -> Path:
    """Write a small JPEG, optionally carrying camera, date and GPS tags."""

    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color=color)
    exif = Image.Exif()
    if make:
        exif[ExifTags.Base.Make] = make
    if model:
        exif[ExifTags.Base.Model] = model
    if taken:
        exif[ExifTags.IFD.Exif] = {ExifTags.Base.DateTimeOriginal: taken}
    if gps:
        lat, lng = gps
        exif[ExifTags.IFD.GPSInfo] = {
            ExifTags.GPS.GPSLatitudeRef: "N" if lat >= 0 else "S",
            ExifTags.GPS.GPSLatitude: (float(abs(lat)), 0.0, 0.0),
            ExifTags.GPS.GPSLongitudeRef: "E" if lng >= 0 else "W",
            ExifTags.GPS.GPSLongitude: (float(abs(lng)), 0.0, 0.0),
        }
    image.save(path, format="JPEG", exif=exif.tobytes())
    return path


class StubReader:
    """Metadata reader returning canned tag records keyed by filename."""

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.records = records or {}
        self.prefetched: list[list[Path]] = []

    def prefetch(self, paths) -> None:
        self.prefetched.append(list(paths))

    def read(self, path: Path) -> Dict[str, Any]:
        return dict(self.records.get(path.name, {}))


@pytest.fixture
def jpeg_factory():
    return make_jpeg


@pytest.fixture
def stub_reader():
    return StubReader()


@pytest.fixture
def workspace(tmp_path: Path) -> dict[str, Path]:
    """Input, output and content roots inside a temporary project directory."""

    roots = {
        "root": tmp_path,
        "input": tmp_path / "photo-source" / "originals",
        "output": tmp_path / "public" / "photos",
        "content": tmp_path / "content",
    }
    roots["input"].mkdir(parents=True)
    return roots
