"""Static configuration values and run settings for gallerysync."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import ConfigError

# Source discovery -----------------------------------------------------------

SUPPORTED_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".heic", ".heif", ".webp", ".tif", ".tiff"}
)
ALBUM_OVERRIDE_NAME = "_album.json"
SHOWCASE_METADATA_NAME = "_showcase.json"

# Manifest tree ----------------------------------------------------------------

ALBUMS_DIR_NAME = "albums"
ALBUM_INDEX_NAME = "albums.json"
GEO_INDEX_NAME = "map.json"
ALBUM_LOCATIONS_NAME = "album-locations.json"
SHOWCASE_MANIFEST = Path("site") / "showcase.json"
SITE_CONFIG = Path("site") / "site.json"
SETTINGS_FILE_NAME = "gallerysync.json"

# Defaults ---------------------------------------------------------------------

DEFAULT_INPUT_DIR = Path("photo-source/originals")
DEFAULT_OUTPUT_DIR = Path("public/photos")
DEFAULT_CONTENT_DIR = Path("content")
DEFAULT_SHOWCASE_INPUT_DIR = DEFAULT_INPUT_DIR / "config" / "showcase"
DEFAULT_HERO_OUTPUT_DIR = Path("public/hero")
HERO_WEB_PREFIX = "hero"
DEFAULT_WEB_PREFIX = "photos"
DEFAULT_WORKERS = 4
DEFAULT_ASPECT_RATIO = 1.5
DEFAULT_LOCATION_ACCURACY = "album-default"
METADATA_BACKENDS = ("pillow", "exiftool")


@dataclass(frozen=True)
class VariantPreset:
    """One resized rendition produced for every source photo."""

    name: str
    max_size: int
    quality: int
    suffix: str
    format: str = "WEBP"
    extension: str = ".webp"

    def filename(self, base_name: str) -> str:
        return f"{base_name}{self.suffix}{self.extension}"


VARIANT_PRESETS: tuple[VariantPreset, ...] = (
    VariantPreset("large", 1800, 80, "-large"),
    VariantPreset("small", 800, 80, "-small"),
    VariantPreset("blur", 40, 40, "-blur"),
)


@dataclass(frozen=True)
class ContentProfile:
    """Describe one kind of content processed by the shared photo pipeline.

    Albums, the showcase collection and the hero grid differ only in where
    their sources live, where the variants go and which document records them.
    """

    name: str
    input_dir: Path
    output_dir: Path
    web_prefix: str
    manifest_path: Path
    metadata_file: Optional[str] = None

    def variant_dir(self, slug: str | None = None) -> Path:
        return self.output_dir / slug if slug else self.output_dir

    def web_base(self, base_name: str, slug: str | None = None) -> str:
        parts = [self.web_prefix.strip("/")]
        if slug:
            parts.append(slug)
        parts.append(base_name)
        return "/".join(part for part in parts if part)


@dataclass
class PipelineSettings:
    """Resolved settings for a single invocation."""

    input_dir: Path = DEFAULT_INPUT_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    content_dir: Path = DEFAULT_CONTENT_DIR
    showcase_input_dir: Path = DEFAULT_SHOWCASE_INPUT_DIR
    hero_output_dir: Path = DEFAULT_HERO_OUTPUT_DIR
    web_prefix: str = DEFAULT_WEB_PREFIX
    force: bool = False
    workers: int = DEFAULT_WORKERS
    metadata_backend: str = "pillow"
    variants: tuple[VariantPreset, ...] = field(default=VARIANT_PRESETS)

    def __post_init__(self) -> None:
        self.input_dir = Path(self.input_dir)
        self.output_dir = Path(self.output_dir)
        self.content_dir = Path(self.content_dir)
        self.showcase_input_dir = Path(self.showcase_input_dir)
        self.hero_output_dir = Path(self.hero_output_dir)
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.metadata_backend not in METADATA_BACKENDS:
            raise ConfigError(
                f"Unknown metadata backend {self.metadata_backend!r}; "
                f"expected one of {', '.join(METADATA_BACKENDS)}"
            )

    # Derived paths ------------------------------------------------------

    @property
    def albums_dir(self) -> Path:
        return self.content_dir / ALBUMS_DIR_NAME

    def album_profile(self) -> ContentProfile:
        return ContentProfile(
            name="albums",
            input_dir=self.input_dir,
            output_dir=self.output_dir,
            web_prefix=self.web_prefix,
            manifest_path=self.albums_dir,
            metadata_file=ALBUM_OVERRIDE_NAME,
        )

    def showcase_profile(self) -> ContentProfile:
        return ContentProfile(
            name="showcase",
            input_dir=self.showcase_input_dir,
            output_dir=self.output_dir / "showcase",
            web_prefix=f"{self.web_prefix.strip('/')}/showcase",
            manifest_path=self.content_dir / SHOWCASE_MANIFEST,
            metadata_file=SHOWCASE_METADATA_NAME,
        )

    def hero_profile(self) -> ContentProfile:
        return ContentProfile(
            name="hero",
            input_dir=self.input_dir,
            output_dir=self.hero_output_dir,
            web_prefix=HERO_WEB_PREFIX,
            manifest_path=self.content_dir / SITE_CONFIG,
        )

    # Construction -------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "PipelineSettings":
        """Build settings from a parsed ``gallerysync.json`` document.

        Relative directories are resolved against *base_dir* when given.
        """

        def lookup(key: str, default: Any = None) -> Any:
            node: Any = data
            for part in key.split("."):
                if isinstance(node, Mapping) and part in node:
                    node = node[part]
                else:
                    return default
            return node

        def as_path(value: Any, default: Path) -> Path:
            if value is None:
                return default
            if not isinstance(value, str):
                raise ConfigError(f"Expected a path string in settings, got {value!r}")
            path = Path(value)
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            return path

        workers = lookup("pipeline.workers", DEFAULT_WORKERS)
        if not isinstance(workers, int) or isinstance(workers, bool):
            raise ConfigError(f"pipeline.workers must be an integer, got {workers!r}")

        return cls(
            input_dir=as_path(lookup("paths.input"), DEFAULT_INPUT_DIR),
            output_dir=as_path(lookup("paths.output"), DEFAULT_OUTPUT_DIR),
            content_dir=as_path(lookup("paths.content"), DEFAULT_CONTENT_DIR),
            showcase_input_dir=as_path(lookup("paths.showcase"), DEFAULT_SHOWCASE_INPUT_DIR),
            hero_output_dir=as_path(lookup("paths.hero"), DEFAULT_HERO_OUTPUT_DIR),
            web_prefix=str(lookup("paths.webPrefix", DEFAULT_WEB_PREFIX)),
            force=bool(lookup("pipeline.force", False)),
            workers=workers,
            metadata_backend=str(lookup("pipeline.metadataBackend", "pillow")),
        )

    def with_overrides(self, **changes: Any) -> "PipelineSettings":
        """Return a copy where every non-``None`` keyword replaces a field."""

        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied)


__all__ = [
    "ALBUMS_DIR_NAME",
    "ALBUM_INDEX_NAME",
    "ALBUM_LOCATIONS_NAME",
    "ALBUM_OVERRIDE_NAME",
    "ContentProfile",
    "DEFAULT_ASPECT_RATIO",
    "DEFAULT_LOCATION_ACCURACY",
    "GEO_INDEX_NAME",
    "HERO_WEB_PREFIX",
    "METADATA_BACKENDS",
    "PipelineSettings",
    "SETTINGS_FILE_NAME",
    "SITE_CONFIG",
    "SHOWCASE_METADATA_NAME",
    "SUPPORTED_EXTENSIONS",
    "VARIANT_PRESETS",
    "VariantPreset",
]
