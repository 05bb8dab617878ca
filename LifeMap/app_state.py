"""
Application shell.

``LifeMapApp`` owns the current screen and wires the record store, the
lifecycle controller, the insight gateway and the graph layout together.
It is what a presentation layer (the CLI here) talks to.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from LifeMap.config import Settings
from LifeMap.database import RecordStore
from LifeMap.flight import SingleFlight
from LifeMap.graph import GraphEdge, GraphNode, LayoutSimulation
from LifeMap.graph.simulation import TickListener
from LifeMap.insight.gateway import InsightGateway, validate_import_url
from LifeMap.insight.report import ChecklistPanel
from LifeMap.models import (
    AnalysisResult,
    Experience,
    ExperienceDraft,
    ExtractedExperience,
    UserProfile,
)
from LifeMap.timeline.attachments import (
    AttachmentLoader,
    AttachmentTooLargeError,
    build_attachment,
    guess_mime_type,
)
from LifeMap.timeline.lifecycle import (
    Clock,
    DraftDefaults,
    ExperienceLifecycle,
    prefill_draft,
    utc_now,
)
from LifeMap.timeline.organizer import TimelineOrganizer
from LifeMap.timeline.quick_add import MilestoneAnswer, drafts_from_cards, drafts_from_milestones

log = logging.getLogger(__name__)

T = TypeVar("T")

FILE_NOTHING_FOUND = "파일에서 경험을 찾을 수 없습니다."
URL_NOTHING_FOUND = "해당 링크에서 유의미한 경험을 찾지 못했습니다."


class Screen(str, Enum):
    ONBOARDING = "onboarding"
    TIMELINE = "timeline"
    ANALYSIS = "analysis"


# Reset is handled separately: it always returns to onboarding.
_TRANSITIONS = {
    Screen.ONBOARDING: {Screen.TIMELINE},
    Screen.TIMELINE: {Screen.ANALYSIS},
    Screen.ANALYSIS: {Screen.TIMELINE},
}


class InvalidTransitionError(RuntimeError):
    def __init__(self, current: Screen, target: Screen):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from {current.value} to {target.value}")


class NoExperiencesFoundError(LookupError):
    """Extraction succeeded but produced no candidates."""


class TwoPhaseConfirm(Generic[T]):
    """
    Gate for destructive actions: created armed, then confirmed or cancelled once.
    """

    def __init__(self, description: str, action: Callable[[], T]):
        self.description = description
        self._action = action
        self.state = "armed"

    @property
    def armed(self) -> bool:
        return self.state == "armed"

    def confirm(self) -> T:
        if not self.armed:
            raise RuntimeError(f"Confirmation for '{self.description}' was already {self.state}")
        self.state = "confirmed"
        return self._action()

    def cancel(self) -> None:
        if self.armed:
            self.state = "cancelled"


class LifeMapApp:
    def __init__(
        self,
        store: Optional[RecordStore] = None,
        gateway: Optional[InsightGateway] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store or RecordStore(settings=self.settings)
        self.gateway = gateway or InsightGateway(settings=self.settings)
        self.clock = clock or utc_now
        self.lifecycle = ExperienceLifecycle(self.store, settings=self.settings, clock=self.clock)
        self.loader = AttachmentLoader(self.settings.attachment_max_bytes)

        self.screen = Screen.ONBOARDING
        self.profile: Optional[UserProfile] = None
        self.analysis: Optional[AnalysisResult] = None
        self.checklists: Optional[ChecklistPanel] = None
        self.simulation: Optional[LayoutSimulation] = None

        self._flight = SingleFlight()
        # Bumped on back navigation and reset; results from older generations are dropped.
        self._generation = 0

    # --------------- navigation -------------------------------------------
    def _go(self, target: Screen) -> None:
        if target not in _TRANSITIONS[self.screen]:
            raise InvalidTransitionError(self.screen, target)
        log.debug(f"Screen {self.screen.value} -> {target.value}")
        self.screen = target

    def _teardown_simulation(self) -> None:
        if self.simulation is not None:
            self.simulation.stop()
            self.simulation = None

    def load(self) -> None:
        self.profile, experiences = self.store.load()
        self.lifecycle.replace_all(experiences)
        self.screen = Screen.TIMELINE if self.profile is not None else Screen.ONBOARDING
        log.info(f"Loaded {len(experiences)} experiences, profile {'present' if self.profile else 'absent'}")

    def complete_profile(self, profile: UserProfile) -> None:
        if Screen.TIMELINE not in _TRANSITIONS[self.screen]:
            raise InvalidTransitionError(self.screen, Screen.TIMELINE)
        self.store.save_profile(profile)
        self.profile = profile
        self._go(Screen.TIMELINE)

    def back_to_timeline(self) -> None:
        self._go(Screen.TIMELINE)
        self._generation += 1
        self._teardown_simulation()

    # --------------- views ------------------------------------------------
    @property
    def experiences(self) -> List[Experience]:
        return self.lifecycle.experiences

    def organizer(self) -> TimelineOrganizer:
        if self.profile is None:
            raise RuntimeError("Profile is required before the timeline can be shown")
        now = self.clock()
        return TimelineOrganizer(self.experiences, self.profile.birth_year, now.year, now)

    # --------------- analysis ---------------------------------------------
    async def analyze(self) -> Optional[AnalysisResult]:
        """
        Analyze the active experiences and switch to the report.

        Returns None when the user navigated away before the result arrived.
        """
        if Screen.ANALYSIS not in _TRANSITIONS[self.screen]:
            raise InvalidTransitionError(self.screen, Screen.ANALYSIS)
        generation = self._generation
        async with self._flight.hold("analyze"):
            result = await self.gateway.analyze(self.experiences)
        if generation != self._generation:
            log.info("Discarding analysis result that arrived after navigation")
            return None
        self.analysis = result
        self.checklists = ChecklistPanel(self.gateway, result.action_plan, self.experiences)
        self._go(Screen.ANALYSIS)
        return result

    async def checklist(self, index: int) -> Optional[List[str]]:
        if self.checklists is None:
            raise RuntimeError("Run an analysis before opening checklists")
        return await self.checklists.toggle(index)

    def graph_simulation(
        self,
        width: Optional[float] = None,
        height: Optional[float] = None,
        on_tick: Optional[TickListener] = None,
        seed: Optional[int] = None,
    ) -> LayoutSimulation:
        """Fresh layout over the active experiences and the latest analysis relationships."""
        self._teardown_simulation()
        relationships = self.analysis.relationships if self.analysis else []
        nodes = [GraphNode.from_experience(e) for e in self.experiences if not e.is_trashed]
        edges = [GraphEdge.from_relationship(r) for r in relationships]
        self.simulation = LayoutSimulation(
            nodes, edges, width=width, height=height, settings=self.settings, on_tick=on_tick, seed=seed,
        )
        return self.simulation

    # --------------- imports ----------------------------------------------
    async def _extract(
        self, key: str, request: Callable[[], Awaitable[List[ExtractedExperience]]],
    ) -> Optional[List[ExtractedExperience]]:
        generation = self._generation
        async with self._flight.hold(key):
            candidates = await request()
        if generation != self._generation:
            log.info(f"Discarding {key} result that arrived after reset")
            return None
        return candidates

    async def import_file(self, path: Path) -> List[Experience]:
        path = Path(path)
        data = await asyncio.to_thread(path.read_bytes)
        mime_type = guess_mime_type(path.name)
        candidates = await self._extract("import", lambda: self.gateway.extract_from_file(data, mime_type))
        if candidates is None:
            return []
        if not candidates:
            raise NoExperiencesFoundError(FILE_NOTHING_FOUND)
        try:
            source = build_attachment(path.name, data, mime_type, self.settings.attachment_max_bytes)
        except AttachmentTooLargeError:
            log.info(f"Source file {path.name} is over the attachment limit; importing without it")
            source = None
        return self.lifecycle.import_extracted(candidates, source)

    async def import_url(self, url: str) -> List[Experience]:
        url = validate_import_url(url)
        candidates = await self._extract("import", lambda: self.gateway.extract_from_url(url))
        if candidates is None:
            return []
        if not candidates:
            raise NoExperiencesFoundError(URL_NOTHING_FOUND)
        return self.lifecycle.import_extracted(candidates)

    async def prefill_from_file(self, draft: ExperienceDraft, path: Path) -> ExperienceDraft:
        """Fill an entry form from the first experience found in a single file."""
        path = Path(path)
        data = await asyncio.to_thread(path.read_bytes)
        candidates = await self._extract("prefill", lambda: self.gateway.extract_from_file(data, guess_mime_type(path.name)))
        if candidates is None:
            return draft
        if not candidates:
            raise NoExperiencesFoundError(FILE_NOTHING_FOUND)
        return prefill_draft(draft, candidates[0])

    async def attach(self, draft: ExperienceDraft, path: Path, slot: str = "default") -> ExperienceDraft:
        return await self.loader.attach(draft, path, slot)

    # --------------- quick add --------------------------------------------
    def add_cards(self, card_ids: Iterable[str]) -> List[Experience]:
        return self.lifecycle.bulk_create(drafts_from_cards(card_ids), DraftDefaults.manual(self.settings))

    def add_milestones(self, answers: Dict[str, MilestoneAnswer]) -> List[Experience]:
        return self.lifecycle.bulk_create(drafts_from_milestones(answers), DraftDefaults.manual(self.settings))

    # --------------- destructive actions ----------------------------------
    def request_purge(self, experience_id: str) -> TwoPhaseConfirm[bool]:
        return TwoPhaseConfirm(
            f"permanently delete {experience_id}",
            lambda: self.lifecycle.permanent_delete(experience_id),
        )

    def request_reset(self) -> TwoPhaseConfirm[None]:
        return TwoPhaseConfirm("reset all data", self._reset)

    def _reset(self) -> None:
        self.store.reset()
        self.lifecycle.replace_all([])
        self.profile = None
        self.analysis = None
        self.checklists = None
        self._generation += 1
        self._teardown_simulation()
        self.screen = Screen.ONBOARDING
        log.info("Application reset to onboarding")
