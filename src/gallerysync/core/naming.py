"""Slug and title derivation for album folders."""

from __future__ import annotations

import hashlib
import re
import unicodedata


def slugify(name: str) -> str:
    """Return a lowercase, ASCII, hyphen-separated slug for *name*.

    The result only depends on *name*, so an album keeps its slug across runs.
    """

    normalized = unicodedata.normalize("NFKD", name)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    ascii_text = ascii_text.replace("&", " and ")
    ascii_text = re.sub(r"[^a-z0-9\s_-]", "", ascii_text)
    ascii_text = re.sub(r"[\s_-]+", "-", ascii_text)
    return ascii_text.strip("-")


def album_slug(folder_name: str) -> str:
    """Return the slug for an album folder, falling back to a stable hash.

    Folder names made only of non-Latin characters slugify to nothing; those get
    ``album-<sha1 prefix>`` so the slug is still deterministic.
    """

    slug = slugify(folder_name)
    if slug:
        return slug
    digest = hashlib.sha1(folder_name.encode("utf-8")).hexdigest()[:8]
    return f"album-{digest}"


__all__ = ["album_slug", "slugify"]
