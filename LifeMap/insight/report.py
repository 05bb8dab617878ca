"""Derived views shown on the analysis report."""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from LifeMap.dates import parse_date
from LifeMap.flight import SingleFlight
from LifeMap.models import Experience

log = logging.getLogger(__name__)


class SatisfactionPoint(BaseModel):
    date: str
    satisfaction: int
    title: str


def category_distribution(experiences: Sequence[Experience]) -> Dict[str, int]:
    """Active experiences per category, most common first."""
    counts = Counter(e.category for e in experiences if not e.is_trashed)
    return dict(counts.most_common())


def satisfaction_series(experiences: Sequence[Experience], now: Optional[datetime] = None) -> List[SatisfactionPoint]:
    now = now or datetime.now(timezone.utc)
    active = sorted(
        (e for e in experiences if not e.is_trashed),
        key=lambda e: parse_date(e.start_date, now),
    )
    return [SatisfactionPoint(date=e.start_date, satisfaction=e.satisfaction, title=e.title) for e in active]


class ChecklistPanel:
    """
    Expandable checklists under each action-plan item.

    At most one item is open. Opening an item the first time fetches its
    checklist; later openings reuse the cached list.
    """

    def __init__(self, gateway, action_plan: Sequence[str], context: Sequence[Experience]):
        self.gateway = gateway
        self.action_plan = list(action_plan)
        self.context = [e for e in context if not e.is_trashed]
        self.selected: Optional[int] = None
        self._cache: Dict[int, List[str]] = {}
        self._flight = SingleFlight()

    def cached(self, index: int) -> Optional[List[str]]:
        return self._cache.get(index)

    def is_loading(self, index: int) -> bool:
        return self._flight.in_flight(str(index))

    async def toggle(self, index: int) -> Optional[List[str]]:
        """Open ``index`` (returning its checklist) or close it if already open."""
        if not 0 <= index < len(self.action_plan):
            raise IndexError(f"No action plan item at index {index}")
        if self.selected == index:
            self.selected = None
            return None
        self.selected = index
        if index in self._cache:
            return self._cache[index]
        async with self._flight.hold(str(index)):
            items = await self.gateway.generate_checklist(self.action_plan[index], self.context)
        self._cache[index] = items
        log.debug(f"Cached {len(items)} checklist items for action {index}")
        return items
