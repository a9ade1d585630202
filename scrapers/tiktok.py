"""TikTok videos via the Clockworks scraper.

Uses ``run-sync-get-dataset-items`` so a single long request both runs the
actor and returns the dataset.
"""

from __future__ import annotations

from typing import Any

from config.settings import settings
from core.models import Platform, SearchQuery
from scrapers.base import ProviderLimits, SyncJobClient
from scrapers.normalizer import TIKTOK_FIELDS, resolve_keyword


class TikTokClient(SyncJobClient):
    platform = Platform.TIKTOK
    mapping = TIKTOK_FIELDS
    actor = settings.TIKTOK_ACTOR

    @staticmethod
    def default_limits() -> ProviderLimits:
        return ProviderLimits(timeout_seconds=settings.TIKTOK_TIMEOUT_SECONDS)

    def build_payload(self, query: SearchQuery) -> dict[str, Any]:
        return {
            "searchQueries": [resolve_keyword(query.category_keyword)],
            "resultsPerPage": settings.TIKTOK_RESULTS_PER_PAGE,
            "searchSection": "/video",
        }
