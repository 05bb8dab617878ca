from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from LifeMap.dates import parse_date
from LifeMap.models import Experience

log = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def year_range(birth_year: int, current_year: int) -> List[int]:
    """Years from ``current_year`` down to ``birth_year``; never empty."""
    if current_year < birth_year:
        return [current_year]
    return list(range(current_year, birth_year - 1, -1))


class TimelineOrganizer:
    """
    Read-only views over an experience list.

    ``now`` is captured once per organizer so that every record whose start
    date cannot be parsed sorts against the same reference instant.
    """

    def __init__(
        self,
        experiences: Sequence[Experience],
        birth_year: int,
        current_year: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.now = now or datetime.now(timezone.utc)
        self.birth_year = birth_year
        self.current_year = current_year if current_year is not None else self.now.year
        self._experiences = list(experiences)

    def start_of(self, experience: Experience) -> datetime:
        return parse_date(experience.start_date, self.now)

    @property
    def active_experiences(self) -> List[Experience]:
        return [e for e in self._experiences if not e.is_trashed]

    @property
    def trashed_experiences(self) -> List[Experience]:
        trashed = [e for e in self._experiences if e.is_trashed]
        return sorted(trashed, key=lambda e: _as_aware(e.deleted_at), reverse=True)

    def year_range(self) -> List[int]:
        return year_range(self.birth_year, self.current_year)

    def by_year(self, year: int) -> List[Experience]:
        bucket = [e for e in self.active_experiences if self.start_of(e).year == year]
        return sorted(bucket, key=self.start_of, reverse=True)

    def grouped(self) -> Dict[int, List[Experience]]:
        """Every active experience bucketed by start year, newest first within a year."""
        groups: Dict[int, List[Experience]] = {}
        for exp in self.active_experiences:
            groups.setdefault(self.start_of(exp).year, []).append(exp)
        for year in groups:
            groups[year].sort(key=self.start_of, reverse=True)
        return groups

    def age_in(self, year: int) -> int:
        """Korean-style age label shown next to each timeline year."""
        return year - self.birth_year + 1

    def chronological(self) -> List[Experience]:
        """Active experiences, oldest first."""
        return sorted(self.active_experiences, key=self.start_of)


def _as_aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
