"""YouTube Shorts via the Streamers scraper.

YouTube runs take materially longer than the other actors, so the run is
polled for up to five minutes with a short per-request timeout on each
status check.
"""

from __future__ import annotations

from typing import Any

from config.settings import settings
from core.models import Platform, SearchQuery
from scrapers.base import AsyncJobClient, ProviderLimits
from scrapers.normalizer import YOUTUBE_FIELDS, resolve_keyword


class YouTubeClient(AsyncJobClient):
    platform = Platform.YOUTUBE
    mapping = YOUTUBE_FIELDS
    actor = settings.YOUTUBE_ACTOR

    @staticmethod
    def default_limits() -> ProviderLimits:
        return ProviderLimits(
            timeout_seconds=settings.YOUTUBE_TIMEOUT_SECONDS,
            poll_interval=settings.YOUTUBE_POLL_INTERVAL,
            poll_attempts=settings.YOUTUBE_POLL_ATTEMPTS,
            status_timeout_seconds=settings.YOUTUBE_STATUS_TIMEOUT_SECONDS,
            dataset_retries=settings.YOUTUBE_DATASET_RETRIES,
            dataset_retry_delay=settings.YOUTUBE_DATASET_RETRY_DELAY,
        )

    def build_payload(self, query: SearchQuery) -> dict[str, Any]:
        # maxResults=0 and maxResultStreams=0 restrict the run to Shorts
        return {
            "searchQueries": [resolve_keyword(query.category_keyword)],
            "maxResultsShorts": settings.YOUTUBE_MAX_SHORTS,
            "maxResults": 0,
            "maxResultStreams": 0,
            "sortingOrder": "views",
        }
