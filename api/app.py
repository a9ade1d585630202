from __future__ import annotations

import asyncio
import json
import logging

from fastapi import FastAPI, Request
from sse_starlette.sse import EventSourceResponse

from api.routers import maintenance, search, stats
from core.analytics import AnalyticsEmitter
from core.conversation import ConversationService
from core.tracking import SearchTracker
from data.sessions import SessionStore
from scrapers.orchestrator import SearchOrchestrator

log = logging.getLogger(__name__)


class Broadcaster:
    """Fans progress, delivery and analytics events out to SSE subscribers.

    A subscriber may follow one requester, in which case it only receives
    events carrying that ``requester_id``.  A full queue drops the event for
    that subscriber only.
    """

    def __init__(self, queue_size: int = 50) -> None:
        self._queue_size = queue_size
        self._follows: dict[asyncio.Queue, str | None] = {}

    def __len__(self) -> int:
        return len(self._follows)

    async def broadcast(self, event: dict) -> None:
        requester_id = event.get("requester_id")
        for queue, follows in list(self._follows.items()):
            if follows is not None and follows != requester_id:
                continue
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                log.debug("SSE subscriber queue full, dropping %s", event.get("event"))

    def subscribe(self, requester_id: str | None = None) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._follows[queue] = requester_id
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._follows.pop(queue, None)


def build_service(broadcaster: Broadcaster) -> ConversationService:
    return ConversationService(
        SearchOrchestrator(),
        SessionStore(),
        tracker=SearchTracker(),
        analytics=AnalyticsEmitter(broadcast_fn=broadcaster.broadcast),
        broadcast_fn=broadcaster.broadcast,
    )


def create_app(
    service: ConversationService | None = None,
    broadcaster: Broadcaster | None = None,
) -> FastAPI:
    app = FastAPI(title="Viral Scout", version="0.1.0")
    broadcaster = broadcaster or Broadcaster()
    app.state.broadcaster = broadcaster
    app.state.service = service or build_service(broadcaster)

    # Register API routers
    app.include_router(search.router)
    app.include_router(stats.router)
    app.include_router(maintenance.router)

    # SSE endpoint: progress milestones and delivery events
    @app.get("/api/events")
    async def sse_events(request: Request, requester_id: str | None = None):
        queue = broadcaster.subscribe(requester_id or None)

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=30.0)
                    except asyncio.TimeoutError:
                        yield {"event": "ping", "data": ""}
                        continue
                    yield {"event": event.get("event", "message"), "data": json.dumps(event)}
            finally:
                broadcaster.unsubscribe(queue)

        return EventSourceResponse(event_generator())

    @app.get("/")
    async def root():
        return {"status": "ok", "message": "Viral Scout API is running"}

    # Health check
    @app.get("/health")
    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app
