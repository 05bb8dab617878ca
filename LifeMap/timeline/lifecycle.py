"""
Lifecycle controller: the only code path that mutates stored experiences.

Each operation builds the next experience list, persists it with a full
overwrite and only then swaps it in, so a failed save leaves the in-memory
list untouched.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from LifeMap.config import Settings
from LifeMap.database import RecordStore
from LifeMap.dates import normalize_date, today_canonical
from LifeMap.models import (
    CUSTOM_CHOICE,
    Attachment,
    Experience,
    ExperienceDraft,
    ExtractedExperience,
)

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class InvalidDraftError(ValueError):
    """A draft is missing a required field; nothing was saved."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__("제목과 내용을 모두 입력해주세요.")


class DraftDefaults(BaseModel):
    """Values applied to draft fields the source left empty."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: str
    emotion: str
    satisfaction: int

    @classmethod
    def manual(cls, settings: Settings) -> "DraftDefaults":
        return cls(
            category=settings.default_category,
            emotion=settings.default_emotion,
            satisfaction=settings.default_satisfaction,
        )

    @classmethod
    def imported(cls, settings: Settings) -> "DraftDefaults":
        return cls(
            title=settings.import_default_title,
            description="",
            category=settings.import_default_category,
            emotion=settings.import_default_emotion,
            satisfaction=settings.import_default_satisfaction,
        )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_choice(choice: Optional[str], custom: Optional[str]) -> Optional[str]:
    if choice == CUSTOM_CHOICE:
        return (custom or "").strip()
    return choice


def draft_from_extracted(candidate: ExtractedExperience) -> ExperienceDraft:
    return ExperienceDraft(
        title=candidate.title or None,
        description=candidate.description or None,
        start_date=candidate.start_date or None,
        end_date=candidate.end_date or candidate.start_date or None,
        category=candidate.category or None,
    )


def prefill_draft(draft: ExperienceDraft, candidate: ExtractedExperience) -> ExperienceDraft:
    """Overlay the non-empty fields of an extracted candidate onto a form draft."""
    updates = {
        field: value
        for field, value in draft_from_extracted(candidate).model_dump(exclude_none=True).items()
        if value
    }
    return draft.model_copy(update=updates)


class ExperienceLifecycle:
    def __init__(
        self,
        store: RecordStore,
        experiences: Optional[Iterable[Experience]] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock or utc_now
        self._experiences: List[Experience] = list(experiences or [])

    @property
    def experiences(self) -> List[Experience]:
        return list(self._experiences)

    def get(self, experience_id: str) -> Optional[Experience]:
        return next((e for e in self._experiences if e.id == experience_id), None)

    # --------------- internals --------------------------------------------
    def _commit(self, experiences: List[Experience]) -> None:
        self.store.save_experiences(experiences)
        self._experiences = experiences

    def _replace(self, updated: Experience) -> None:
        self._commit([updated if e.id == updated.id else e for e in self._experiences])

    def _build(self, draft: ExperienceDraft, defaults: DraftDefaults) -> Experience:
        today = today_canonical(self.clock())
        start = normalize_date(draft.start_date) or today
        end = normalize_date(draft.end_date) or start
        category = _resolve_choice(draft.category, draft.custom_category)
        emotion = _resolve_choice(draft.emotion, draft.custom_emotion)
        return Experience(
            id=str(uuid.uuid4()),
            title=(draft.title or "").strip() or (defaults.title or ""),
            description=(draft.description or "").strip() or (defaults.description or ""),
            start_date=start,
            end_date=end,
            category=category if category is not None else defaults.category,
            emotion=emotion if emotion is not None else defaults.emotion,
            satisfaction=draft.satisfaction or defaults.satisfaction,
            tags=list(draft.tags or []),
            attachments=list(draft.attachments or []),
        )

    @staticmethod
    def _require_text(title: Optional[str], description: Optional[str]) -> None:
        missing = [
            name for name, value in (("title", title), ("description", description))
            if not (value or "").strip()
        ]
        if missing:
            raise InvalidDraftError(missing)

    # --------------- operations -------------------------------------------
    def create(self, draft: ExperienceDraft) -> Experience:
        self._require_text(draft.title, draft.description)
        experience = self._build(draft, DraftDefaults.manual(self.settings))
        self._commit(self._experiences + [experience])
        log.info(f"Created experience {experience.id} ({experience.title})")
        return experience

    def update(self, experience_id: str, draft: ExperienceDraft) -> Optional[Experience]:
        current = self.get(experience_id)
        if current is None:
            log.debug(f"Update ignored, unknown experience {experience_id}")
            return None

        changes = draft.model_dump(exclude_unset=True)
        custom_category = changes.pop("custom_category", None)
        custom_emotion = changes.pop("custom_emotion", None)
        if "category" in changes:
            changes["category"] = _resolve_choice(changes["category"], custom_category)
        if "emotion" in changes:
            changes["emotion"] = _resolve_choice(changes["emotion"], custom_emotion)
        for field in ("start_date", "end_date"):
            if field in changes:
                changes[field] = normalize_date(changes[field]) or getattr(current, field)
        if changes.get("satisfaction") is None:
            changes.pop("satisfaction", None)
        for field in ("title", "description"):
            if isinstance(changes.get(field), str):
                changes[field] = changes[field].strip()
        for field in ("tags", "attachments", "category", "emotion"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        if "attachments" in changes:
            changes["attachments"] = [Attachment.model_validate(a) for a in changes["attachments"]]

        merged = current.model_copy(update=changes)
        self._require_text(merged.title, merged.description)
        updated = Experience.model_validate(merged.model_dump())
        self._replace(updated)
        log.info(f"Updated experience {experience_id}")
        return updated

    def soft_delete(self, experience_id: str) -> Optional[Experience]:
        current = self.get(experience_id)
        if current is None:
            return None
        trashed = current.model_copy(update={"deleted_at": self.clock()})
        self._replace(trashed)
        log.info(f"Moved experience {experience_id} to trash")
        return trashed

    def restore(self, experience_id: str) -> Optional[Experience]:
        current = self.get(experience_id)
        if current is None or not current.is_trashed:
            return current
        restored = current.model_copy(update={"deleted_at": None})
        self._replace(restored)
        log.info(f"Restored experience {experience_id}")
        return restored

    def permanent_delete(self, experience_id: str) -> bool:
        """Remove a record for good. Callers must confirm with the user first."""
        if self.get(experience_id) is None:
            return False
        self._commit([e for e in self._experiences if e.id != experience_id])
        log.info(f"Permanently deleted experience {experience_id}")
        return True

    def bulk_create(
        self,
        drafts: Iterable[ExperienceDraft],
        defaults: Optional[DraftDefaults] = None,
    ) -> List[Experience]:
        """Create many records with a single save. Empty fields take ``defaults``."""
        defaults = defaults or DraftDefaults.imported(self.settings)
        created = [self._build(d, defaults) for d in drafts]
        if not created:
            return []
        self._commit(self._experiences + created)
        log.info(f"Bulk-created {len(created)} experiences")
        return created

    def import_extracted(
        self,
        candidates: Iterable[ExtractedExperience],
        source_attachment: Optional[Attachment] = None,
    ) -> List[Experience]:
        drafts = []
        for candidate in candidates:
            draft = draft_from_extracted(candidate)
            if source_attachment is not None:
                draft.attachments = [source_attachment]
            drafts.append(draft)
        return self.bulk_create(drafts, DraftDefaults.imported(self.settings))

    def replace_all(self, experiences: Iterable[Experience]) -> None:
        """Swap the in-memory list without saving (used after a store reset or reload)."""
        self._experiences = list(experiences)
