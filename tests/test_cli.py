from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import make_jpeg
from gallerysync import cli
from gallerysync.config import PipelineSettings
from gallerysync.library.showcase import lookup_location, merge_collection
from gallerysync.models import ExifInfo, PhotoRecord


def load(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def dirs(workspace) -> list[str]:
    return [
        "--input",
        str(workspace["input"]),
        "--output",
        str(workspace["output"]),
        "--content",
        str(workspace["content"]),
    ]


def test_import_exits_zero_even_with_bad_images(workspace, capsys) -> None:
    make_jpeg(workspace["input"] / "Trip" / "a.jpg")
    (workspace["input"] / "Trip" / "bad.jpg").write_bytes(b"bad")

    code = cli.main(["-q", "import", *dirs(workspace)])

    assert code == 0
    out = capsys.readouterr().out
    assert "photos: 1 processed, 0 skipped, 1 failed" in out
    assert (workspace["content"] / "albums" / "trip.json").exists()


def test_missing_input_root_exits_one(workspace, capsys) -> None:
    args = dirs(workspace)
    args[1] = str(workspace["root"] / "nowhere")
    assert cli.main(["import", *args]) == 1
    assert "nowhere" in capsys.readouterr().err


def test_malformed_album_index_exits_one(workspace, capsys) -> None:
    make_jpeg(workspace["input"] / "Trip" / "a.jpg")
    workspace["content"].mkdir()
    (workspace["content"] / "albums.json").write_text("{", encoding="utf-8")

    assert cli.main(["import", *dirs(workspace)]) == 1
    assert "albums.json" in capsys.readouterr().err
    assert not (workspace["content"] / "albums").exists()


def test_bad_arguments_exit_two() -> None:
    with pytest.raises(SystemExit) as info:
        cli.main(["import", "--metadata-backend", "magic"])
    assert info.value.code == 2


def test_settings_file_is_used_and_flags_override_it(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "gallerysync.json").write_text(
        json.dumps({"paths": {"input": "src", "content": "site-content"}, "pipeline": {"workers": 3}}),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    args = cli.build_parser().parse_args(["import", "--workers", "1"])
    settings = cli.resolve_settings(args)
    assert settings.input_dir == tmp_path / "src"
    assert settings.content_dir == tmp_path / "site-content"
    assert settings.workers == 1


def test_rebuild_index_requires_albums_directory(tmp_path: Path) -> None:
    assert cli.main(["rebuild-index", "--content", str(tmp_path / "content")]) == 1


def test_reset_removes_derived_files_only(workspace, monkeypatch) -> None:
    make_jpeg(workspace["input"] / "Trip" / "a.jpg")
    assert cli.main(["-q", "import", *dirs(workspace)]) == 0
    monkeypatch.chdir(workspace["root"])
    content = workspace["content"]
    reset_args = ["reset", "--content", str(content), "--output", str(workspace["output"])]

    assert cli.main(["-q", *reset_args, "--dry-run"]) == 0
    assert (content / "albums" / "trip.json").exists()

    assert cli.main(["-q", *reset_args]) == 0
    assert not (content / "albums" / "trip.json").exists()
    assert not workspace["output"].exists()
    assert load(content / "albums.json") == {"albums": []}
    assert load(content / "map.json") == {"albums": []}
    assert (content / "album-locations.json").exists()
    assert (workspace["input"] / "Trip" / "a.jpg").exists()


def test_reset_refuses_paths_outside_working_directory(workspace, tmp_path_factory, monkeypatch) -> None:
    elsewhere = tmp_path_factory.mktemp("elsewhere")
    monkeypatch.chdir(workspace["root"])
    code = cli.main(["reset", "--content", str(elsewhere), "--output", str(workspace["output"])])
    assert code == 1
    assert elsewhere.exists()


def test_showcase_command_builds_collection(workspace) -> None:
    showcase_dir = workspace["root"] / "showcase"
    make_jpeg(showcase_dir / "IMG_1.jpg")
    make_jpeg(showcase_dir / "IMG_2.jpg")
    (showcase_dir / "_showcase.json").write_text(
        json.dumps({"locations": {"IMG_1.jpg": "Zion", "2": "Bryce"}}), encoding="utf-8"
    )
    args = ["showcase", "--input", str(showcase_dir), "--output", str(workspace["output"])]
    args += ["--content", str(workspace["content"])]

    assert cli.main(["-q", *args]) == 0

    images = load(workspace["content"] / "site" / "showcase.json")["images"]
    assert [(i["id"], i["filename"], i["location"], i["order"]) for i in images] == [
        (1, "IMG_1.jpg", "Zion", 1),
        (2, "IMG_2.jpg", "Bryce", 2),
    ]
    assert images[0]["path"] == "photos/showcase/IMG_1-large.webp"
    assert (workspace["output"] / "showcase" / "IMG_2-blur.webp").exists()


def record(name: str) -> PhotoRecord:
    base = f"photos/showcase/{name.rsplit('.', 1)[0]}"
    return PhotoRecord(name, f"{base}-large.webp", f"{base}-large.webp", f"{base}-small.webp", f"{base}-blur.webp",
                       exif=ExifInfo())


def test_merge_collection_keeps_existing_order_and_fields() -> None:
    existing = [
        {"id": 7, "filename": "b.jpg", "pathLarge": "photos/showcase/b-large.webp", "order": 5, "label": "Hero",
         "location": "Kept", "lat": 1, "lng": 2},
        {"id": 3, "filename": "gone.jpg", "order": 9},
    ]
    merged = merge_collection([record("a.jpg"), record("b.jpg")], existing, {"a": "From base name", "b.jpg": "New"})

    assert [item["filename"] for item in merged] == ["b.jpg", "gone.jpg", "a.jpg"]
    hero = merged[0]
    assert (hero["id"], hero["order"], hero["label"], hero["location"]) == (7, 5, "Hero", "Kept")
    assert (hero["lat"], hero["lng"]) == (1, 2)
    assert (merged[2]["id"], merged[2]["order"], merged[2]["location"]) == (8, 10, "From base name")


def test_lookup_location_by_name_base_or_position() -> None:
    locations = {"x.jpg": "X", "y": "Y", "3": "Third"}
    assert lookup_location(locations, "x.jpg", 1) == "X"
    assert lookup_location(locations, "y.png", 2) == "Y"
    assert lookup_location(locations, "z.jpg", 3) == "Third"
    assert lookup_location(locations, "z.jpg", 4) is None


def test_showcase_profile_paths() -> None:
    profile = PipelineSettings(output_dir=Path("out"), content_dir=Path("c")).showcase_profile()
    assert profile.web_base("IMG") == "photos/showcase/IMG"
    assert profile.variant_dir() == Path("out") / "showcase"
    assert profile.manifest_path == Path("c") / "site" / "showcase.json"
