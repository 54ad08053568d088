from __future__ import annotations

from pathlib import Path
from unittest import mock

import pytest

from conftest import make_jpeg
from gallerysync.errors import ExternalToolError, InputRootMissingError
from gallerysync.io.metadata import ExiftoolMetadataReader, PillowMetadataReader, read_metadata_safely
from gallerysync.io.scanner import read_overrides, scan_albums


def test_scan_albums_sorts_and_filters(tmp_path: Path) -> None:
    make_jpeg(tmp_path / "Zurich" / "b.JPG")
    make_jpeg(tmp_path / "Zurich" / "a.jpg")
    (tmp_path / "Zurich" / "notes.txt").write_text("x")
    make_jpeg(tmp_path / "Zurich" / "_hidden.jpg")
    make_jpeg(tmp_path / "Cafés & Bars" / "c.jpg")
    (tmp_path / ".cache").mkdir()
    (tmp_path / "Empty").mkdir()

    albums = scan_albums(tmp_path)

    assert [album.slug for album in albums] == ["cafes-and-bars", "empty", "zurich"]
    zurich = albums[-1]
    assert [image.name for image in zurich.images] == ["a.jpg", "b.JPG"]
    assert albums[1].images == []


def test_scan_albums_requires_input_root(tmp_path: Path) -> None:
    with pytest.raises(InputRootMissingError):
        scan_albums(tmp_path / "missing")


def test_read_overrides_defaults_and_malformed_file(tmp_path: Path) -> None:
    assert read_overrides(tmp_path, "Folder").title == "Folder"

    (tmp_path / "_album.json").write_text("{broken", encoding="utf-8")
    overrides = read_overrides(tmp_path, "Folder")
    assert overrides.title == "Folder"
    assert overrides.provided == frozenset()

    (tmp_path / "_album.json").write_text('{"title": "Nice", "tags": "oops", "isFavorite": true}', encoding="utf-8")
    overrides = read_overrides(tmp_path, "Folder")
    assert overrides.title == "Nice"
    assert overrides.tags == []
    assert overrides.has("isFavorite") and not overrides.has("tags")


def test_pillow_reader_extracts_camera_date_and_gps(tmp_path: Path) -> None:
    path = make_jpeg(
        tmp_path / "gps.jpg",
        make="Canon",
        model="EOS R5",
        taken="2024:05:01 10:11:12",
        gps=(-33.5, 151.25),
    )
    tags = PillowMetadataReader().read(path)
    assert tags["Make"] == "Canon"
    assert tags["Model"] == "EOS R5"
    assert tags["DateTimeOriginal"] == "2024:05:01 10:11:12"
    assert tags["GPSLatitudeRef"] == "S"
    assert tags["GPSLatitude"][0] == pytest.approx(33.5)


def test_read_metadata_safely_swallows_extraction_errors(tmp_path: Path) -> None:
    reader = mock.Mock()
    reader.read.side_effect = ExternalToolError("exiftool executable not found")
    assert read_metadata_safely(reader, tmp_path / "x.jpg") == {}

    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"nope")
    assert read_metadata_safely(PillowMetadataReader(), broken) == {}


def test_exiftool_reader_maps_signed_coordinates(tmp_path: Path) -> None:
    payload = {"SourceFile": "x.jpg", "Make": "Sony", "GPSLatitude": -12.5, "GPSLongitude": 45.0, "ISO": ""}
    with mock.patch("gallerysync.utils.exiftool.get_metadata", return_value=payload):
        tags = ExiftoolMetadataReader().read(tmp_path / "x.jpg")
    assert tags == {"Make": "Sony", "latitude": -12.5, "longitude": 45.0}


def test_exiftool_reader_serves_prefetched_records(tmp_path: Path) -> None:
    paths = [tmp_path / "a.jpg", tmp_path / "b.jpg"]
    payload = [{"SourceFile": str(paths[0]), "Make": "Sony"}, {"SourceFile": str(paths[1]), "Make": "Nikon"}]
    reader = ExiftoolMetadataReader()
    with mock.patch("gallerysync.utils.exiftool.get_metadata_batch", return_value=payload) as batch, mock.patch(
        "gallerysync.utils.exiftool.get_metadata", return_value={}
    ) as single:
        reader.prefetch(paths)
        tags = [reader.read(path) for path in paths]
        reader.read(tmp_path / "c.jpg")

    batch.assert_called_once_with(paths)
    single.assert_called_once_with(tmp_path / "c.jpg")
    assert tags == [{"Make": "Sony"}, {"Make": "Nikon"}]


def test_exiftool_prefetch_failure_falls_back_to_single_reads(tmp_path: Path) -> None:
    reader = ExiftoolMetadataReader()
    with mock.patch(
        "gallerysync.utils.exiftool.get_metadata_batch", side_effect=ExternalToolError("exiftool missing")
    ), mock.patch("gallerysync.utils.exiftool.get_metadata", return_value={"Model": "X100"}) as single:
        reader.prefetch([tmp_path / "a.jpg"])
        assert reader.read(tmp_path / "a.jpg") == {"Model": "X100"}
    single.assert_called_once()
