"""
Normalization of stored experience records.

Records written by earlier versions of the app may carry ``date`` instead of
``startDate``/``endDate``, ``energyLevel`` instead of ``satisfaction``, or
``-`` separated dates. Everything is folded into the canonical shape here,
once, when the blob is loaded.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from LifeMap.dates import normalize_date
from LifeMap.models import Attachment, Experience

log = logging.getLogger(__name__)

LEGACY_FIELDS = ("date", "energyLevel")
DEFAULT_SATISFACTION = 5
TEXT_FIELDS = ("title", "description", "category", "emotion")


def _coerce_satisfaction(value: Any) -> int:
    try:
        score = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_SATISFACTION
    return min(10, max(1, score))


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "\n".join(_coerce_text(item) for item in value)
    return str(value)


def _readable_attachments(items: List[Any], record_id: Any) -> List[Dict[str, Any]]:
    kept = []
    for item in items:
        try:
            kept.append(Attachment.model_validate(item).model_dump(by_alias=True))
        except ValidationError:
            log.warning(f"Dropping unreadable attachment on stored experience {record_id!r}")
    return kept


def normalize_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``raw`` in canonical camelCase shape."""
    record = {k: v for k, v in raw.items() if k not in LEGACY_FIELDS}

    legacy_date = raw.get("date")
    start = raw.get("startDate") or legacy_date
    end = raw.get("endDate") or legacy_date or start
    record["startDate"] = normalize_date(start)
    record["endDate"] = normalize_date(end)

    satisfaction = raw.get("satisfaction")
    if satisfaction in (None, "", 0):
        satisfaction = raw.get("energyLevel")
    record["satisfaction"] = _coerce_satisfaction(satisfaction)

    record["id"] = str(raw.get("id") or uuid.uuid4())
    # Imports stored whatever the model returned, including lists and numbers.
    for key in TEXT_FIELDS:
        record[key] = _coerce_text(record.get(key))
    tags = record.get("tags")
    record["tags"] = [_coerce_text(t) for t in tags] if isinstance(tags, list) else []
    attachments = record.get("attachments")
    record["attachments"] = _readable_attachments(attachments, record["id"]) if isinstance(attachments, list) else []
    if not record.get("deletedAt"):
        record.pop("deletedAt", None)
    return record


def migrate_experience(raw: Any) -> Optional[Experience]:
    if not isinstance(raw, dict):
        log.warning(f"Keeping stored experience that is not an object aside: {type(raw).__name__}")
        return None
    try:
        return Experience.model_validate(normalize_record(raw))
    except ValidationError as e:
        log.warning(f"Keeping unreadable stored experience {raw.get('id')!r} aside: {e.error_count()} validation errors")
        return None


def split_experiences(raw_list: Any) -> Tuple[List[Experience], List[Any]]:
    """
    Migrate a stored blob into readable experiences and the raw items that are not.

    The unreadable items are returned untouched so the store can write them
    back on the next save instead of dropping them.
    """
    if not isinstance(raw_list, list):
        log.warning("Stored experiences blob is not a list; treating as empty.")
        return [], []
    experiences: List[Experience] = []
    unreadable: List[Any] = []
    for item in raw_list:
        exp = migrate_experience(item)
        if exp is None:
            unreadable.append(item)
        else:
            experiences.append(exp)
    if unreadable:
        log.info(f"Loaded {len(experiences)} of {len(raw_list)} stored experiences.")
    return experiences, unreadable
