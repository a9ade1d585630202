"""Instagram reels via the Apify hashtag scraper (async run + dataset)."""

from __future__ import annotations

from typing import Any

from config.settings import settings
from core.models import Platform, SearchQuery
from scrapers.base import AsyncJobClient, ProviderLimits
from scrapers.normalizer import INSTAGRAM_FIELDS, hashtag_keyword


class InstagramClient(AsyncJobClient):
    platform = Platform.INSTAGRAM
    mapping = INSTAGRAM_FIELDS
    actor = settings.INSTAGRAM_ACTOR

    @staticmethod
    def default_limits() -> ProviderLimits:
        return ProviderLimits(
            timeout_seconds=settings.INSTAGRAM_TIMEOUT_SECONDS,
            poll_interval=settings.INSTAGRAM_POLL_INTERVAL,
            poll_attempts=settings.INSTAGRAM_POLL_ATTEMPTS,
            dataset_retries=settings.INSTAGRAM_DATASET_RETRIES,
            dataset_retry_delay=settings.INSTAGRAM_DATASET_RETRY_DELAY,
        )

    def build_payload(self, query: SearchQuery) -> dict[str, Any]:
        return {
            "hashtags": [hashtag_keyword(query.category_keyword)],
            "keywordSearch": False,
            "resultsType": "stories",
            "resultsLimit": settings.INSTAGRAM_RESULTS_LIMIT,
        }
