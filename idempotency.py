"""Idempotency-Key response cache for mutating endpoints."""

import logging
import threading
import time
from typing import Any

from config import IDEMPOTENCY_TTL_SECONDS

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
MAX_KEY_LENGTH = 200


class IdempotencyStore:
    """First successful response per (owner_id, scope, key), kept for ttl seconds.

    Lives on app.state so tests can swap in a fresh instance.
    """

    def __init__(self, ttl_seconds: int = IDEMPOTENCY_TTL_SECONDS, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str, str], tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at > self.ttl_seconds]
        for k in expired:
            del self._entries[k]

    def get(self, owner_id: str, scope: str, key: str) -> Any | None:
        """Cached body for a key, or None if unseen or expired."""
        with self._lock:
            self._purge(self._clock())
            entry = self._entries.get((owner_id, scope, key))
        if entry is None:
            return None
        logger.warning("Replaying idempotent response for %s %s", owner_id, scope)
        return entry[1]

    def put(self, owner_id: str, scope: str, key: str, body: Any) -> Any:
        """Store a body unless one is already cached; return the cached body."""
        with self._lock:
            now = self._clock()
            self._purge(now)
            entry = self._entries.setdefault((owner_id, scope, key), (now, body))
        return entry[1]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
