"""In-memory search tracking backing the statistics endpoints."""

from __future__ import annotations

import re
import uuid
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from config.settings import settings
from core.models import RankedResultSet, SearchQuery

_PREFIX_RE = re.compile(r"^(cat_|sub_)", re.IGNORECASE)
_LANGUAGE_NAMES = {"fa": "Persian", "en": "English"}


class SearchStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    NO_RESULTS = "no_results"


@dataclass(frozen=True)
class SearchRecord:
    id: str
    requester_id: str
    platform: str
    category: str
    language: str
    min_views: int
    results_count: int
    timestamp: datetime
    status: SearchStatus


def _category_label(category: str) -> str:
    return _PREFIX_RE.sub("", category).replace("_", " ")


class SearchTracker:
    """Keeps the most recent searches and the set of requesters seen."""

    def __init__(self, max_records: int | None = None) -> None:
        self._records: deque[SearchRecord] = deque(maxlen=max_records or settings.TRACKING_MAX_RECORDS)
        self._requesters: set[str] = set()

    def track(
        self,
        requester_id: str,
        query: SearchQuery,
        results: RankedResultSet,
        *,
        timestamp: datetime | None = None,
    ) -> SearchRecord:
        if results.failed:
            status = SearchStatus.FAILED
        elif len(results) == 0:
            status = SearchStatus.NO_RESULTS
        else:
            status = SearchStatus.SUCCESS
        record = SearchRecord(
            id=f"search_{uuid.uuid4().hex[:12]}",
            requester_id=requester_id,
            platform=results.platform.value,
            category=query.category_keyword,
            language=query.language,
            min_views=query.min_views,
            results_count=len(results),
            timestamp=timestamp or datetime.now(timezone.utc),
            status=status,
        )
        self._records.append(record)
        self._requesters.add(requester_id)
        return record

    # ── queries ──────────────────────────────────────────────────────

    def total_searches(self) -> int:
        return len(self._records)

    def unique_users(self) -> int:
        return len(self._requesters)

    def active_channels(self) -> int:
        return len({r.platform for r in self._records})

    def recent(self, limit: int = 50) -> list[SearchRecord]:
        ordered = sorted(self._records, key=lambda r: r.timestamp, reverse=True)
        return ordered[:limit]

    def viral_score(self, now: datetime | None = None) -> int:
        """Blend of 24h success rate and average result count."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=24)
        recent = [r for r in self._records if r.timestamp >= cutoff]
        if not recent:
            return 0
        avg_results = sum(r.results_count for r in recent) / len(recent)
        success_rate = sum(1 for r in recent if r.status is SearchStatus.SUCCESS) / len(recent)
        return round(success_rate * 50 + avg_results / 10)

    def platform_distribution(self) -> dict[str, int]:
        return dict(Counter(r.platform for r in self._records))

    def category_distribution(self) -> dict[str, int]:
        return dict(Counter(_category_label(r.category) for r in self._records))

    def language_distribution(self) -> dict[str, int]:
        return dict(Counter(r.language for r in self._records))

    def daily(self, days: int = 7, now: datetime | None = None) -> list[dict]:
        today = (now or datetime.now(timezone.utc)).date()
        buckets: dict = {
            today - timedelta(days=offset): {"searches": 0, "engagement": 0, "virality": 0}
            for offset in range(days - 1, -1, -1)
        }
        for r in self._records:
            bucket = buckets.get(r.timestamp.date())
            if bucket is None:
                continue
            bucket["searches"] += 1
            bucket["engagement"] += r.results_count
            if r.status is SearchStatus.SUCCESS:
                bucket["virality"] += r.results_count

        rows = []
        for day, data in buckets.items():
            n = data["searches"] or 1
            rows.append(
                {
                    "date": day.isoformat(),
                    "day": day.strftime("%a"),
                    "searches": data["searches"],
                    "engagement": round(data["engagement"] / n),
                    "virality": round(data["virality"] / n),
                }
            )
        return rows

    def logs(self) -> list[dict]:
        return [
            {
                "id": r.id,
                "requester_id": r.requester_id,
                "platform": r.platform,
                "category": _category_label(r.category),
                "language": _LANGUAGE_NAMES.get(r.language, r.language),
                "min_views": r.min_views,
                "results_count": r.results_count,
                "timestamp": r.timestamp.isoformat(),
                "status": r.status.value,
            }
            for r in self.recent(limit=len(self._records))
        ]
