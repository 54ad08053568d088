"""Exception hierarchy shared by every gallerysync module."""

from __future__ import annotations

from pathlib import Path


class GallerySyncError(Exception):
    """Base class for all errors raised by gallerysync."""

    #: Fatal errors abort the run before (or instead of) writing anything.
    fatal: bool = False


class ConfigError(GallerySyncError):
    """Settings or command-line options are unusable."""

    fatal = True


class InputRootMissingError(ConfigError):
    """The directory holding the source photographs does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Input directory does not exist: {path}")
        self.path = path


class ManifestInvalidError(GallerySyncError):
    """A persisted JSON document is unreadable or has an unexpected shape."""

    def __init__(self, message: str, path: Path | None = None, *, fatal: bool = True) -> None:
        super().__init__(message)
        self.path = path
        self.fatal = fatal


class ExternalToolError(GallerySyncError):
    """An external helper (``exiftool``) is missing or failed."""


class ImageDecodeError(GallerySyncError):
    """A source image could not be opened or decoded."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot read image {path}: {reason}")
        self.path = path
        self.reason = reason


class VariantError(GallerySyncError):
    """Encoding one resized variant of a source image failed."""

    def __init__(self, variant: str, path: Path, reason: str) -> None:
        super().__init__(f"Failed to create {variant} variant at {path}: {reason}")
        self.variant = variant
        self.path = path
        self.reason = reason


__all__ = [
    "ConfigError",
    "ExternalToolError",
    "GallerySyncError",
    "ImageDecodeError",
    "InputRootMissingError",
    "ManifestInvalidError",
    "VariantError",
]
