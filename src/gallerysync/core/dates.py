"""Normalisation of the many date spellings found in EXIF and manifests."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Iterable, Optional

_CALENDAR_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def normalize_date(raw: object) -> Optional[str]:
    """Return *raw* as a plain ``YYYY-MM-DD`` string, or ``None``.

    Accepts EXIF timestamps (``2024:05:01 10:11:12``), ISO strings
    (``2024-05-01T10:11:12Z``), plain dates and ``datetime``/``date`` objects.
    Zeroed EXIF placeholders such as ``0000:00:00 00:00:00`` yield ``None``.
    """

    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None
    head = re.split(r"[ T]", text, maxsplit=1)[0].replace(":", "-")
    match = _CALENDAR_DATE.match(head)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        date(year, month, day)
    except ValueError:
        return None
    return head


def date_span(values: Iterable[object]) -> tuple[Optional[str], Optional[str]]:
    """Return the earliest and latest normalised dates among *values*."""

    dates = sorted(d for d in (normalize_date(value) for value in values) if d)
    if not dates:
        return None, None
    return dates[0], dates[-1]


__all__ = ["date_span", "normalize_date"]
