from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from core import messages
from core.analytics import AnalyticsEmitter, BroadcastFn, EventType, build_event
from core.delivery import BatchDeliveryController, DeliveryState, Page
from core.models import Platform, SearchQuery, SessionState
from core.tracking import SearchTracker
from data.sessions import SessionStore
from scrapers.orchestrator import DEFAULT_PLATFORM, SearchOrchestrator
from scrapers.progress import ProgressFn

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reply:
    """What a conversational client should show after one action."""

    page: Page
    prompt: str
    messages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "requester_id": self.page.requester_id,
            "state": self.page.state.value,
            "has_more": self.page.has_more,
            "sent": self.page.sent,
            "total": self.page.total,
            "start_index": self.page.start_index,
            "posts": [
                {
                    "id": p.id,
                    "url": p.url,
                    "caption": p.caption,
                    "thumbnail_url": p.thumbnail_url,
                    "views": p.views,
                    "likes": p.likes,
                    "comments": p.comments,
                    "shares": p.shares,
                }
                for p in self.page.posts
            ],
            "messages": self.messages,
            "prompt": self.prompt,
        }


class ConversationService:
    """Runs one inbound requester action end to end."""

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        store: SessionStore,
        *,
        tracker: SearchTracker | None = None,
        analytics: AnalyticsEmitter | None = None,
        broadcast_fn: BroadcastFn | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.store = store
        self.tracker = tracker or SearchTracker()
        self.analytics = analytics or AnalyticsEmitter(api_url="", bot_key="", broadcast_fn=broadcast_fn)
        self.controller = BatchDeliveryController(store, batch_size=batch_size)
        self._broadcast = broadcast_fn

    async def start_search(self, requester_id: str, query: SearchQuery) -> Reply:
        platform = self.orchestrator.client_for(query.platform).platform
        await self._event(EventType.SEARCH_STARTED, requester_id, query, platform)

        results = await self.orchestrator.search(query, progress=self._progress_fn(requester_id))
        self.tracker.track(requester_id, query, results)

        page = self.controller.first_page(requester_id, results, query)
        if page.state is DeliveryState.NO_RESULTS:
            log.info("%s: no results for '%s'", requester_id, query.category_keyword)
            return Reply(page=page, prompt=messages.page_prompt(page))

        await self._event(
            EventType.SEARCH_RESULTS_READY, requester_id, query, platform, total_results=page.total
        )
        await self._batch_events(page, query, platform)
        return Reply(page=page, prompt=messages.page_prompt(page), messages=messages.render_page(page))

    async def next_page(self, requester_id: str) -> Reply:
        page = self.controller.next_page(requester_id)
        if page.posts:
            session = self.store.get(requester_id)
            query, platform = self._query_of(session)
            if query is not None:
                await self._batch_events(page, query, platform)
        return Reply(page=page, prompt=messages.page_prompt(page), messages=messages.render_page(page))

    async def stop(self, requester_id: str, name: str = "") -> Reply:
        session = self.controller.stop(requester_id)
        query, platform = self._query_of(session)
        if session is not None and query is not None:
            await self._event(
                EventType.SEARCH_CANCELLED,
                requester_id,
                query,
                platform,
                total_results=session.total,
                sent_so_far=session.sent,
                remaining=session.remaining,
            )
        page = Page(
            requester_id=requester_id,
            posts=(),
            start_index=(session.offset + 1) if session else 1,
            sent=session.sent if session else 0,
            total=session.total if session else 0,
            state=DeliveryState.STOPPED,
        )
        return Reply(page=page, prompt=messages.farewell(name))

    # ── helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _query_of(session: SessionState | None) -> tuple[SearchQuery | None, Platform]:
        if session is None or session.query is None:
            return None, DEFAULT_PLATFORM
        return session.query, session.query.platform or DEFAULT_PLATFORM

    async def _batch_events(self, page: Page, query: SearchQuery, platform: Platform) -> None:
        await self._event(
            EventType.BATCH_SENT,
            page.requester_id,
            query,
            platform,
            total_results=page.total,
            sent_so_far=page.sent,
            remaining=page.total - page.sent,
        )
        if page.state is DeliveryState.EXHAUSTED:
            await self._event(
                EventType.SEARCH_FINISHED,
                page.requester_id,
                query,
                platform,
                total_results=page.total,
                sent_so_far=page.sent,
            )

    async def _event(
        self,
        event_type: EventType,
        requester_id: str,
        query: SearchQuery,
        platform: Platform,
        **extra: Any,
    ) -> None:
        await self.analytics.emit(build_event(event_type, requester_id, query, platform, **extra))

    def _progress_fn(self, requester_id: str) -> ProgressFn | None:
        if self._broadcast is None:
            return None
        broadcast = self._broadcast

        async def report(percent: int) -> None:
            await broadcast(
                {
                    "event": "progress",
                    "requester_id": requester_id,
                    "percent": percent,
                    "text": messages.progress_text(percent),
                }
            )

        return report
