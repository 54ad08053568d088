from __future__ import annotations

from pathlib import Path

import pytest

from conftest import StubReader, make_jpeg
from gallerysync.config import VARIANT_PRESETS, PipelineSettings
from gallerysync.core.photo_builder import (
    PhotoRecordBuilder,
    build_exif,
    dms_to_decimal,
    format_aperture,
    format_camera,
    format_date_taken,
    format_focal_length,
    format_shutter_speed,
    resolve_gps,
)
from gallerysync.io.variants import ImageVariantGenerator
from gallerysync.models import ItemStatus


@pytest.mark.parametrize(
    ("value", "expected"),
    [(2, "2s"), (1.0, "1s"), (0.004, "1/250s"), (1 / 3, "1/3s"), ("1/60", "1/60s"), (0, None), (None, None)],
)
def test_format_shutter_speed(value, expected) -> None:
    assert format_shutter_speed(value) == expected


def test_display_formatting() -> None:
    assert format_aperture(2.8) == "f/2.8"
    assert format_aperture(8) == "f/8"
    assert format_focal_length(35.4) == "35mm"
    assert format_focal_length(23.5) == "24mm"
    assert format_camera("Canon", "EOS R5") == "Canon EOS R5"
    assert format_camera("Canon", None) is None
    assert format_date_taken("2024:05:01 10:11:12") == "2024-05-01T10:11:12"


def test_dms_to_decimal_negates_south_and_west() -> None:
    assert dms_to_decimal((10, 30, 0), "N") == pytest.approx(10.5)
    assert dms_to_decimal((10, 30, 0), "S") == pytest.approx(-10.5)
    assert dms_to_decimal((20, 0, 36), "W") == pytest.approx(-20.01)
    assert dms_to_decimal(None, "N") is None


def test_resolve_gps_prefers_decimal_pair() -> None:
    tags = {
        "latitude": 1.5,
        "longitude": 2.5,
        "GPSLatitude": (10, 0, 0),
        "GPSLatitudeRef": "N",
        "GPSLongitude": (20, 0, 0),
        "GPSLongitudeRef": "E",
    }
    assert resolve_gps(tags) == (1.5, 2.5)
    del tags["latitude"]
    assert resolve_gps(tags) == (pytest.approx(10.0), pytest.approx(20.0))
    assert resolve_gps({}) == (None, None)


def test_build_exif_from_tags() -> None:
    exif = build_exif(
        {
            "Make": "FUJIFILM",
            "Model": "X-T4",
            "FNumber": 2.0,
            "ExposureTime": 0.008,
            "ISO": 160,
            "FocalLength": 23.0,
            "DateTimeOriginal": "2023:07:14 18:00:00",
            "ImageDescription": "Harbour",
        }
    )
    assert exif.to_dict() == {
        "camera": "FUJIFILM X-T4",
        "lens": None,
        "aperture": "f/2",
        "shutterSpeed": "1/125s",
        "iso": 160,
        "focalLength": "23mm",
        "dateTaken": "2023-07-14T18:00:00",
        "copyright": None,
        "artist": None,
        "description": "Harbour",
    }


def _builder(reader, *, force: bool = False) -> PhotoRecordBuilder:
    return PhotoRecordBuilder(ImageVariantGenerator(), reader, VARIANT_PRESETS, force=force)


def test_build_creates_variants_and_record(tmp_path: Path) -> None:
    source = make_jpeg(tmp_path / "src" / "IMG_0001.jpg", (3000, 2000))
    settings = PipelineSettings(output_dir=tmp_path / "out")
    reader = StubReader({"IMG_0001.jpg": {"latitude": 10.0, "longitude": 20.0, "Make": "Sony", "Model": "A7"}})

    build = _builder(reader).build(source, settings.album_profile(), "trip")

    assert build.result.status is ItemStatus.SUCCEEDED
    record = build.record
    assert record is not None
    assert record.path == "photos/trip/IMG_0001-large.webp"
    assert record.path_large == record.path
    assert record.path_small == "photos/trip/IMG_0001-small.webp"
    assert record.path_blur == "photos/trip/IMG_0001-blur.webp"
    assert (record.width, record.height) == (3000, 2000)
    assert record.aspect_ratio == pytest.approx(1.5)
    assert (record.lat, record.lng) == (10.0, 20.0)
    assert record.exif.camera == "Sony A7"

    from PIL import Image

    with Image.open(tmp_path / "out" / "trip" / "IMG_0001-large.webp") as large:
        assert max(large.size) == 1800
    with Image.open(tmp_path / "out" / "trip" / "IMG_0001-blur.webp") as blur:
        assert max(blur.size) == 40


def test_build_never_upscales(tmp_path: Path) -> None:
    source = make_jpeg(tmp_path / "tiny.jpg", (100, 50))
    settings = PipelineSettings(output_dir=tmp_path / "out")
    _builder(StubReader()).build(source, settings.album_profile(), "a")

    from PIL import Image

    with Image.open(tmp_path / "out" / "a" / "tiny-large.webp") as large:
        assert large.size == (100, 50)


def test_existing_variants_are_skipped_unless_forced(tmp_path: Path) -> None:
    source = make_jpeg(tmp_path / "IMG.jpg")
    profile = PipelineSettings(output_dir=tmp_path / "out").album_profile()

    first = _builder(StubReader()).build(source, profile, "a")
    second = _builder(StubReader()).build(source, profile, "a")
    forced = _builder(StubReader(), force=True).build(source, profile, "a")

    assert first.result.status is ItemStatus.SUCCEEDED
    assert second.result.status is ItemStatus.SKIPPED
    assert second.record is not None
    assert forced.result.status is ItemStatus.SUCCEEDED
    assert {outcome.status for outcome in forced.variants} == {"created"}


def test_unreadable_source_fails_without_record(tmp_path: Path) -> None:
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not an image")
    profile = PipelineSettings(output_dir=tmp_path / "out").album_profile()

    build = _builder(StubReader()).build(broken, profile, "a")

    assert build.record is None
    assert build.result.status is ItemStatus.FAILED
    assert not (tmp_path / "out" / "a").exists()


def test_failed_variant_does_not_stop_the_others(tmp_path: Path, monkeypatch) -> None:
    source = make_jpeg(tmp_path / "IMG.jpg")
    profile = PipelineSettings(output_dir=tmp_path / "out").album_profile()
    generator = ImageVariantGenerator()
    original_render = generator.render

    def flaky_render(image, preset, destination):
        if preset.name == "small":
            from gallerysync.errors import VariantError

            raise VariantError(preset.name, destination, "disk full")
        original_render(image, preset, destination)

    monkeypatch.setattr(generator, "render", flaky_render)
    build = PhotoRecordBuilder(generator, StubReader(), VARIANT_PRESETS).build(source, profile, "a")

    assert build.record is not None
    assert build.variant_failures == 1
    assert "small" in build.result.detail
    assert (tmp_path / "out" / "a" / "IMG-large.webp").exists()
    assert (tmp_path / "out" / "a" / "IMG-blur.webp").exists()


def test_decompression_bomb_fails_only_that_photo(tmp_path: Path, monkeypatch) -> None:
    from PIL import Image

    source = make_jpeg(tmp_path / "pano.jpg", (60, 40))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    profile = PipelineSettings(output_dir=tmp_path / "out").album_profile()

    build = _builder(StubReader()).build(source, profile, "a")

    assert build.record is None
    assert build.result.status is ItemStatus.FAILED
    assert "exceeds limit" in build.result.detail


def test_unexpected_error_is_contained_in_the_photo(tmp_path: Path, monkeypatch) -> None:
    source = make_jpeg(tmp_path / "IMG.jpg")
    generator = ImageVariantGenerator()

    def explode(path):
        raise RuntimeError("codec crashed")

    monkeypatch.setattr(generator, "probe", explode)
    profile = PipelineSettings(output_dir=tmp_path / "out").album_profile()
    build = PhotoRecordBuilder(generator, StubReader(), VARIANT_PRESETS).build(source, profile, "a")

    assert build.record is None
    assert build.result.status is ItemStatus.FAILED
    assert build.result.detail == "RuntimeError: codec crashed"


def test_base_name_renames_the_variants(tmp_path: Path) -> None:
    source = make_jpeg(tmp_path / "IMG_9437.jpg")
    profile = PipelineSettings(hero_output_dir=tmp_path / "hero").hero_profile()

    build = _builder(StubReader()).build(source, profile, None, base_name="hero-2")

    assert build.record is not None
    assert build.record.filename == "IMG_9437.jpg"
    assert build.record.path_small == "hero/hero-2-small.webp"
    assert (tmp_path / "hero" / "hero-2-blur.webp").exists()
