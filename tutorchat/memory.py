from __future__ import annotations

import logging
from typing import Callable

from cachetools import TTLCache

from tutorchat.session import TutorSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Independent tutoring sessions keyed by id; idle ones expire after `ttl_seconds`."""

    def __init__(
        self,
        factory: Callable[[str], TutorSession] | None = None,
        *,
        maxsize: int = 10_000,
        ttl_seconds: int = 60 * 60,
    ) -> None:
        self._factory = factory or (lambda sid: TutorSession(session_id=sid))
        self._cache: TTLCache[str, TutorSession] = TTLCache(maxsize=maxsize, ttl=ttl_seconds)

    def get(self, session_id: str) -> TutorSession | None:
        return self._cache.get(session_id)

    def get_or_create(self, session_id: str) -> TutorSession:
        session = self._cache.get(session_id)
        if session is None:
            session = self._factory(session_id)
            self._cache[session_id] = session
            logger.info("Session created: %s", session_id)
        else:
            # Reading does not refresh a TTLCache entry; re-store to keep active sessions alive.
            self._cache[session_id] = session
        return session

    def close(self, session_id: str) -> bool:
        session = self._cache.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def __len__(self) -> int:
        return len(self._cache)
