from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings import settings
from core.errors import ConfigurationError, JobFailure, ScrapeError
from core.models import JobStatus, NormalizedPost, Platform, RankedResultSet, RawItem, SearchQuery
from scrapers.apify import ApifyClient
from scrapers.normalizer import FieldMapping, normalize
from scrapers.retry import Sleep, poll_until, retry_fixed

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderLimits:
    """Timeout and retry budget for one provider.

    ``timeout_seconds`` bounds the whole submit -> poll -> fetch chain.
    """

    timeout_seconds: float
    poll_interval: float = 3.0
    poll_attempts: int = 0
    status_timeout_seconds: float | None = None
    dataset_retries: int = 1
    dataset_retry_delay: float = 0.0


def rank_posts(
    posts: Iterable[NormalizedPost], min_views: int, limit: int
) -> tuple[NormalizedPost, ...]:
    """Filter to ``views >= min_views``, stable-sort by views desc, truncate."""
    kept = [p for p in posts if p.views >= min_views]
    kept.sort(key=lambda p: p.views, reverse=True)
    return tuple(kept[:limit])


class BaseJobClient(ABC):
    """Runs one search against one provider and returns ranked posts.

    ``run`` never raises for provider trouble: transport, parse, job failure,
    retry exhaustion and the overall timeout all degrade to an empty
    ``RankedResultSet`` with ``error`` set.  Only a missing credential raises
    (``ConfigurationError``), before any network call.
    """

    platform: Platform
    mapping: FieldMapping
    actor: str

    def __init__(
        self,
        token: str | None = None,
        *,
        limits: ProviderLimits | None = None,
        base_url: str | None = None,
        max_results: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._token = settings.APIFY_API_TOKEN if token is None else token
        self._base_url = base_url or settings.APIFY_BASE_URL
        self._max_results = max_results or settings.MAX_RESULTS
        self._transport = transport
        self._sleep = sleep
        self.limits = limits or self.default_limits()

    @staticmethod
    @abstractmethod
    def default_limits() -> ProviderLimits:
        """Budget taken from settings when none is injected."""
        ...

    @abstractmethod
    def build_payload(self, query: SearchQuery) -> dict[str, Any]:
        """Provider-specific actor input for ``query``."""
        ...

    @abstractmethod
    async def fetch_items(self, api: ApifyClient, query: SearchQuery) -> list[RawItem]:
        """Submit the job and return its raw dataset items."""
        ...

    async def run(self, query: SearchQuery) -> RankedResultSet:
        if not self._token:
            raise ConfigurationError("APIFY_API_TOKEN is not set")

        t0 = time.monotonic()
        error: str | None = None
        items: list[RawItem] = []
        try:
            items = await asyncio.wait_for(
                self._fetch_with_client(query), timeout=self.limits.timeout_seconds
            )
        except asyncio.TimeoutError:
            error = f"timed out after {self.limits.timeout_seconds:.0f}s"
        except ConfigurationError:
            raise
        except ScrapeError as exc:
            error = f"{type(exc).__name__}: {exc}"
        except Exception as exc:
            log.exception("%s: unexpected error during run", self.platform.value)
            error = f"unexpected error: {exc}"

        posts = rank_posts(self.normalize_items(items), query.min_views, self._max_results)
        elapsed = time.monotonic() - t0
        if error:
            log.warning("%s search '%s' degraded to empty: %s", self.platform.value, query.category_keyword, error)
        log.info(
            "%s search '%s': %d raw | %d ranked (min_views=%d) | %.1fs",
            self.platform.value,
            query.category_keyword,
            len(items),
            len(posts),
            query.min_views,
            elapsed,
        )
        return RankedResultSet(
            platform=self.platform,
            posts=posts,
            error=error,
            duration_seconds=elapsed,
        )

    def normalize_items(self, items: Iterable[RawItem]) -> list[NormalizedPost]:
        posts: list[NormalizedPost] = []
        rejected = 0
        for item in items:
            post = normalize(item, self.mapping)
            if post is None:
                rejected += 1
                continue
            posts.append(post)
        if rejected:
            log.debug("%s: %d raw items rejected", self.platform.value, rejected)
        return posts

    async def _fetch_with_client(self, query: SearchQuery) -> list[RawItem]:
        async with ApifyClient(
            self._token,
            self._base_url,
            timeout=self.limits.timeout_seconds,
            transport=self._transport,
        ) as api:
            return await self.fetch_items(api, query)


class SyncJobClient(BaseJobClient):
    """One request submits the job and returns the finished dataset."""

    async def fetch_items(self, api: ApifyClient, query: SearchQuery) -> list[RawItem]:
        payload = self.build_payload(query)
        log.debug("%s: run-sync payload %s", self.platform.value, payload)
        return await api.run_sync(self.actor, payload)


class AsyncJobClient(BaseJobClient):
    """Submit, poll the run to a terminal status, then fetch the dataset."""

    async def fetch_items(self, api: ApifyClient, query: SearchQuery) -> list[RawItem]:
        payload = self.build_payload(query)
        log.debug("%s: run payload %s", self.platform.value, payload)
        handle, status = await api.start_run(self.actor, payload)
        if not handle.dataset_id:
            raise JobFailure(f"run {handle.run_id} has no dataset id")
        log.info("%s: run %s started (dataset %s)", self.platform.value, handle.run_id, handle.dataset_id)

        if self.limits.poll_attempts > 0:
            status = await self._wait_for_run(api, handle.run_id, status)
            if status is not JobStatus.SUCCEEDED:
                raise JobFailure(f"run {handle.run_id} finished as {status.value}")

        return await retry_fixed(
            lambda: api.dataset_items(handle.dataset_id),
            attempts=self.limits.dataset_retries,
            delay=self.limits.dataset_retry_delay,
            accept=lambda items: len(items) > 0,
            sleep=self._sleep,
            label=f"{self.platform.value} dataset {handle.dataset_id}",
        )

    async def _wait_for_run(self, api: ApifyClient, run_id: str, status: JobStatus) -> JobStatus:
        async def check() -> JobStatus | None:
            try:
                return await api.run_status(run_id, timeout=self.limits.status_timeout_seconds)
            except ScrapeError as exc:
                log.debug("%s: status check for %s failed: %s", self.platform.value, run_id, exc)
                return None

        return await poll_until(
            check,
            initial=status,
            is_terminal=lambda s: s.is_terminal,
            interval=self.limits.poll_interval,
            attempts=self.limits.poll_attempts,
            sleep=self._sleep,
            label=f"{self.platform.value} run {run_id}",
        )
