"""Batched delivery of a ranked result set to one requester.

Per requester the controller moves through::

    no_results -> first page sent -> (more_pending <-> page sent) -> exhausted

A "stop" action moves any session to ``stopped``.  Pagination only slices the
result set captured at search time; it never re-ranks or re-fetches.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from config.settings import settings
from core.models import NormalizedPost, SearchQuery, SessionState
from data.sessions import SessionStore

log = logging.getLogger(__name__)


class DeliveryState(str, Enum):
    NO_RESULTS = "no_results"
    MORE_PENDING = "more_pending"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Page:
    requester_id: str
    posts: tuple[NormalizedPost, ...]
    start_index: int
    sent: int
    total: int
    state: DeliveryState

    @property
    def has_more(self) -> bool:
        return self.state is DeliveryState.MORE_PENDING


def state_of(session: SessionState | None) -> DeliveryState:
    if session is None or session.total == 0:
        return DeliveryState.NO_RESULTS
    if session.stopped:
        return DeliveryState.STOPPED
    if session.offset >= session.total:
        return DeliveryState.EXHAUSTED
    return DeliveryState.MORE_PENDING


class BatchDeliveryController:
    def __init__(self, store: SessionStore, *, batch_size: int | None = None) -> None:
        self._store = store
        self._batch_size = batch_size or settings.BATCH_SIZE

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def first_page(
        self,
        requester_id: str,
        results: Iterable[NormalizedPost],
        query: SearchQuery | None = None,
    ) -> Page:
        """Start a new session over ``results`` and emit its first page.

        Always supersedes the requester's previous session, even when
        ``results`` is empty.
        """
        posts = tuple(results)
        first = posts[: self._batch_size]
        session = self._store.upsert(
            requester_id,
            last_results=posts,
            offset=len(first),
            batch_size=self._batch_size,
            sent=len(first),
            total=len(posts),
            stopped=False,
            query=query,
        )
        log.debug("%s: first page %d/%d", requester_id, len(first), len(posts))
        return Page(
            requester_id=requester_id,
            posts=first,
            start_index=1,
            sent=session.sent,
            total=session.total,
            state=state_of(session),
        )

    def next_page(self, requester_id: str) -> Page:
        session = self._store.get(requester_id)
        current = state_of(session)
        if current is not DeliveryState.MORE_PENDING:
            # Late or duplicate "continue": answer idempotently, no mutation.
            if current is DeliveryState.NO_RESULTS:
                current = DeliveryState.EXHAUSTED
            return self._empty_page(requester_id, session, current)

        batch = session.last_results[session.offset : session.offset + session.batch_size]
        updated = self._store.upsert(
            requester_id,
            offset=session.offset + len(batch),
            sent=session.sent + len(batch),
        )
        log.debug("%s: page at %d, %d posts", requester_id, session.offset, len(batch))
        return Page(
            requester_id=requester_id,
            posts=batch,
            start_index=session.offset + 1,
            sent=updated.sent,
            total=updated.total,
            state=state_of(updated),
        )

    def stop(self, requester_id: str) -> SessionState | None:
        """Suppress further pages. ``last_results`` is left in place."""
        if self._store.get(requester_id) is None:
            return None
        return self._store.upsert(requester_id, stopped=True)

    @staticmethod
    def _empty_page(
        requester_id: str, session: SessionState | None, state: DeliveryState
    ) -> Page:
        return Page(
            requester_id=requester_id,
            posts=(),
            start_index=(session.offset + 1) if session else 1,
            sent=session.sent if session else 0,
            total=session.total if session else 0,
            state=state,
        )
