"""
Canonical date handling for experience records.

Stored dates use the ``YYYY.MM.DD`` form. Older records used ``-`` as the
separator; both are accepted on read.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional

CANONICAL_FORMAT = "%Y.%m.%d"
_PARSE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%Y")
_DISALLOWED_INPUT = re.compile(r"[^0-9.]")


def to_canonical(day: date) -> str:
    return day.strftime(CANONICAL_FORMAT)


def today_canonical(now: Optional[datetime] = None) -> str:
    """Today's date (UTC) in canonical form."""
    now = now or datetime.now(timezone.utc)
    return to_canonical(now.date())


def sanitize_date_input(value: str) -> str:
    """Keep only digits and separators from user-typed date text."""
    return _DISALLOWED_INPUT.sub("", value.replace("-", "."))


def normalize_date(value: Optional[str]) -> str:
    """Rewrite the legacy ``-`` separator to ``.``; anything else is kept as-is."""
    if not value or not isinstance(value, str):
        return ""
    return value.strip().replace("-", ".")


def parse_date(value: Optional[str], now: datetime) -> datetime:
    """
    Parse a stored date string for ordering purposes.

    Unparseable or empty values resolve to ``now`` so the record sorts as the
    most recent one instead of failing the whole view.
    """
    if not value or not isinstance(value, str):
        return now
    normalized = value.strip().replace(".", "-")
    for fmt in _PARSE_FORMATS:
        try:
            parsed = datetime.strptime(normalized, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=now.tzinfo)
    return now
