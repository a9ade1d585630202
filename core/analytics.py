"""Fire-and-forget analytics events.

Events go to the in-process broadcaster (SSE) and, when configured, are
POSTed to an external dashboard.  Nothing here may raise into, or delay, the
caller: remote posts run as background tasks and failures are logged at
debug level.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx

from config.settings import settings
from core.models import Platform, SearchQuery

log = logging.getLogger(__name__)

SOURCE = "viral-scout"

BroadcastFn = Callable[[dict], Awaitable[None]]


class EventType(str, Enum):
    SEARCH_STARTED = "search_started"
    SEARCH_RESULTS_READY = "search_results_ready"
    BATCH_SENT = "batch_sent"
    SEARCH_FINISHED = "search_finished"
    SEARCH_CANCELLED = "search_cancelled"


def build_event(
    event_type: EventType,
    requester_id: str,
    query: SearchQuery,
    platform: Platform,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "source": SOURCE,
        "event_type": event_type.value,
        "platform": platform.value,
        "requester_id": requester_id,
        "keyword": query.category_keyword,
        "language": query.language,
        "min_views": query.min_views,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    payload.update({k: v for k, v in extra.items() if v is not None})
    return payload


class AnalyticsEmitter:
    def __init__(
        self,
        api_url: str | None = None,
        bot_key: str | None = None,
        *,
        broadcast_fn: BroadcastFn | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = (settings.ANALYTICS_API_URL if api_url is None else api_url).rstrip("/")
        self._bot_key = settings.ANALYTICS_BOT_KEY if bot_key is None else bot_key
        self._broadcast = broadcast_fn
        self._timeout = timeout or settings.ANALYTICS_TIMEOUT_SECONDS
        self._transport = transport
        self._pending: set[asyncio.Task] = set()

    @property
    def remote_enabled(self) -> bool:
        return bool(self._api_url and self._bot_key)

    async def emit(self, payload: dict[str, Any]) -> None:
        if self._broadcast:
            try:
                await self._broadcast({"event": "analytics", **payload})
            except Exception as e:
                log.debug("Analytics broadcast failed: %s", e)

        if not self.remote_enabled:
            return
        task = asyncio.create_task(self._post(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def aclose(self) -> None:
        """Wait for in-flight posts (used at shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _post(self, payload: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self._api_url}/api/events",
                    json=payload,
                    headers={"Authorization": f"Bearer {self._bot_key}"},
                )
                log.debug("Analytics %s -> HTTP %d", payload.get("event_type"), resp.status_code)
        except Exception as e:
            log.debug("Analytics post failed: %s", e)
