from __future__ import annotations

import logging
from collections.abc import Mapping

from config.settings import settings
from core.models import Platform, RankedResultSet, SearchQuery
from scrapers.base import BaseJobClient
from scrapers.instagram import InstagramClient
from scrapers.progress import ProgressFn, ProgressReporter
from scrapers.tiktok import TikTokClient
from scrapers.youtube import YouTubeClient

log = logging.getLogger(__name__)

DEFAULT_PLATFORM = Platform.INSTAGRAM


class SearchOrchestrator:
    """Dispatches a ``SearchQuery`` to the job client for its platform.

    Holds no per-search state, so concurrent searches for different
    requesters are independent.
    """

    def __init__(
        self,
        clients: Mapping[Platform, BaseJobClient] | None = None,
        *,
        progress_interval: float | None = None,
    ) -> None:
        self._clients: dict[Platform, BaseJobClient] = dict(clients) if clients else {
            Platform.INSTAGRAM: InstagramClient(),
            Platform.TIKTOK: TikTokClient(),
            Platform.YOUTUBE: YouTubeClient(),
        }
        self._progress_interval = (
            settings.PROGRESS_INTERVAL_SECONDS if progress_interval is None else progress_interval
        )

    def client_for(self, platform: Platform | None) -> BaseJobClient:
        # Older request shapes carry no platform; they were Instagram-only.
        client = self._clients.get(platform or DEFAULT_PLATFORM)
        if client is None:
            raise KeyError(f"No job client registered for {platform}")
        return client

    async def search(
        self, query: SearchQuery, progress: ProgressFn | None = None
    ) -> RankedResultSet:
        client = self.client_for(query.platform)
        log.info(
            "Search: platform=%s keyword='%s' language=%s min_views=%d",
            client.platform.value,
            query.category_keyword,
            query.language,
            query.min_views,
        )
        if progress is None:
            return await client.run(query)

        async with ProgressReporter(progress, interval=self._progress_interval):
            return await client.run(query)
