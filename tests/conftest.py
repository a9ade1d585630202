from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from core.models import NormalizedPost
from scrapers.base import ProviderLimits

BASE_URL = "https://apify.test/v2"

FAST_LIMITS = ProviderLimits(
    timeout_seconds=5.0,
    poll_interval=0.0,
    poll_attempts=3,
    dataset_retries=3,
    dataset_retry_delay=0.0,
)


def _to_response(canned: Any) -> httpx.Response:
    """int -> bare status, str -> raw text body, Exception -> raised,
    anything else -> 200 JSON."""
    if isinstance(canned, Exception):
        raise canned
    if isinstance(canned, int):
        return httpx.Response(canned, text="error")
    if isinstance(canned, str):
        return httpx.Response(200, text=canned)
    return httpx.Response(200, content=json.dumps(canned).encode(), headers={"Content-Type": "application/json"})


class FakeApify:
    """Canned Apify v2 endpoints; records every request it serves.

    ``statuses`` and ``datasets`` are consumed one per call; the last entry
    repeats once the list runs out.
    """

    def __init__(
        self,
        *,
        run: Any = None,
        statuses: list[Any] | None = None,
        datasets: list[Any] | None = None,
        sync: Any = None,
    ) -> None:
        self.run = run if run is not None else {
            "data": {"id": "run-1", "defaultDatasetId": "ds-1", "status": "RUNNING"}
        }
        self.statuses = list(statuses or [{"data": {"status": "SUCCEEDED"}}])
        self.datasets = list(datasets or [[]])
        self.sync = sync if sync is not None else []
        self.requests: list[httpx.Request] = []

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/run-sync-get-dataset-items"):
            return _to_response(self.sync)
        if path.endswith("/runs"):
            return _to_response(self.run)
        if "/actor-runs/" in path:
            return _to_response(self._next(self.statuses))
        if "/datasets/" in path:
            return _to_response(self._next(self.datasets))
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


def ig_item(views: int, n: int = 0, **extra: Any) -> dict[str, Any]:
    item = {
        "id": f"ig{n}",
        "shortCode": f"SC{n}",
        "url": f"https://www.instagram.com/p/SC{n}/",
        "caption": f"reel {n}",
        "displayUrl": f"https://cdn.test/{n}.jpg",
        "isVideo": True,
        "videoPlayCount": views,
        "likesCount": 10 + n,
        "commentsCount": n,
    }
    item.update(extra)
    return item


def post(views: int, n: int = 0) -> NormalizedPost:
    return NormalizedPost(
        id=f"p{n}",
        url=f"https://example.test/{n}",
        caption=f"post {n}",
        thumbnail_url="",
        likes=0,
        comments=0,
        views=views,
    )


@pytest.fixture
def fast_limits() -> ProviderLimits:
    return FAST_LIMITS
