from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

from LifeMap.models import Attachment, ExperienceDraft

log = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class AttachmentTooLargeError(ValueError):
    def __init__(self, name: str, size: int, max_bytes: int):
        self.name = name
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(f"파일 크기는 {max_bytes // (1024 * 1024)}MB 이하여야 합니다.")


def guess_mime_type(name: str) -> str:
    mime, _ = mimetypes.guess_type(name)
    return mime or "application/octet-stream"


def check_size(name: str, size: int, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
    if size > max_bytes:
        log.warning(f"Rejected attachment {name}: {size} bytes exceeds {max_bytes}")
        raise AttachmentTooLargeError(name, size, max_bytes)


def build_attachment(
    name: str,
    data: bytes,
    mime_type: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> Attachment:
    check_size(name, len(data), max_bytes)
    return Attachment(
        id=str(uuid.uuid4()),
        name=name,
        mime_type=mime_type or guess_mime_type(name),
        data=base64.b64encode(data).decode("ascii"),
    )


def _read_file(path: Path, max_bytes: int) -> Attachment:
    # The reported size is checked before any bytes are read.
    check_size(path.name, path.stat().st_size, max_bytes)
    return build_attachment(path.name, path.read_bytes(), max_bytes=max_bytes)


async def read_attachment(path: Path, max_bytes: int = DEFAULT_MAX_BYTES) -> Attachment:
    return await asyncio.to_thread(_read_file, Path(path), max_bytes)


def remove_attachment(draft: ExperienceDraft, attachment_id: str) -> ExperienceDraft:
    remaining = [a for a in (draft.attachments or []) if a.id != attachment_id]
    return draft.model_copy(update={"attachments": remaining})


class AttachmentLoader:
    """
    Reads files into draft attachments off the event loop.

    Reads for the same slot are serialized; different slots may overlap.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES):
        self.max_bytes = max_bytes
        self._locks: Dict[str, asyncio.Lock] = {}
        # Callers holding or waiting on each slot lock.
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def _slot(self, slot: str):
        lock = self._locks.setdefault(slot, asyncio.Lock())
        self._users[slot] = self._users.get(slot, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[slot] -= 1
            if not self._users[slot]:
                del self._users[slot]
                del self._locks[slot]

    def is_reading(self, slot: str) -> bool:
        lock = self._locks.get(slot)
        return lock is not None and lock.locked()

    async def attach(self, draft: ExperienceDraft, path: Path, slot: str = "default") -> ExperienceDraft:
        """Return a copy of ``draft`` with the file appended; ``draft`` itself is never modified."""
        async with self._slot(slot):
            attachment = await read_attachment(path, self.max_bytes)
        log.debug(f"Attached {attachment.name} ({attachment.mime_type}) in slot {slot}")
        return draft.model_copy(update={"attachments": list(draft.attachments or []) + [attachment]})
