from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Set

log = logging.getLogger(__name__)


class InFlightError(RuntimeError):
    def __init__(self, key: str):
        self.key = key
        super().__init__("이미 요청을 처리하고 있습니다. 잠시만 기다려주세요.")


class SingleFlight:
    """
    Refuses a second request for a key while the first is still awaiting.

    Only safe on a single event loop: the check and the claim happen without
    an intervening ``await``.
    """

    def __init__(self) -> None:
        self._active: Set[str] = set()

    def in_flight(self, key: str = "default") -> bool:
        return key in self._active

    @asynccontextmanager
    async def hold(self, key: str = "default") -> AsyncIterator[None]:
        if key in self._active:
            log.info(f"Refused duplicate request for '{key}'")
            raise InFlightError(key)
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)
