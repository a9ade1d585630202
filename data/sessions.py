from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import fields, replace
from datetime import datetime, timedelta, timezone

from config.settings import settings
from core.models import NormalizedPost, SessionState

log = logging.getLogger(__name__)

_FIELD_NAMES = frozenset(f.name for f in fields(SessionState)) - {"requester_id", "updated_at"}


class SessionStore:
    """In-memory mapping from requester id to ``SessionState``.

    Each call is atomic with respect to the event loop.  Entries are kept in
    least-recently-used order; once ``max_entries`` is exceeded the oldest
    entry is dropped.  ``evict_idle`` is run periodically by the maintenance
    scheduler.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self._max_entries = max_entries or settings.SESSION_MAX_ENTRIES
        self._states: OrderedDict[str, SessionState] = OrderedDict()

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, key: str) -> bool:
        return key in self._states

    def get(self, key: str) -> SessionState | None:
        state = self._states.get(key)
        if state is not None:
            self._states.move_to_end(key)
        return state

    def upsert(self, key: str, **patch) -> SessionState:
        """Merge ``patch`` into the stored state; last write wins per field."""
        unknown = set(patch) - _FIELD_NAMES
        if unknown:
            raise TypeError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        existing = self._states.get(key) or SessionState(requester_id=key)
        updated = replace(existing, **patch, updated_at=datetime.now(timezone.utc))
        self._states[key] = updated
        self._states.move_to_end(key)
        self._evict_overflow()
        return updated

    def record_results(self, key: str, results: Iterable[NormalizedPost]) -> SessionState:
        return self.upsert(key, last_results=tuple(results))

    def evict_idle(self, max_idle_seconds: float, now: datetime | None = None) -> int:
        """Drop sessions untouched for longer than ``max_idle_seconds``."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=max_idle_seconds)
        stale = [key for key, state in self._states.items() if state.updated_at < cutoff]
        for key in stale:
            del self._states[key]
        if stale:
            log.info("Evicted %d idle sessions (%d remain)", len(stale), len(self._states))
        return len(stale)

    def _evict_overflow(self) -> None:
        while len(self._states) > self._max_entries:
            key, _ = self._states.popitem(last=False)
            log.debug("Session store full, evicted %s", key)
