"""Typed records exchanged between the gallerysync pipeline stages."""

from .album import AlbumLocationEntry, AlbumOverrides, PrimaryLocation, is_coordinate
from .photo import ExifInfo, PhotoRecord, exif_is_populated
from .results import ItemResult, ItemStatus, RunSummary

__all__ = [
    "AlbumLocationEntry",
    "AlbumOverrides",
    "ExifInfo",
    "ItemResult",
    "ItemStatus",
    "PhotoRecord",
    "PrimaryLocation",
    "RunSummary",
    "exif_is_populated",
    "is_coordinate",
]
