from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

RawItem = dict[str, Any]


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"


class JobStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING

    @classmethod
    def from_provider(cls, value: str | None) -> JobStatus:
        """Map Apify run status vocabulary onto our four states."""
        status = (value or "").strip().upper()
        if status == "SUCCEEDED":
            return cls.SUCCEEDED
        if status in ("FAILED", "ABORTED"):
            return cls.FAILED
        if status == "TIMED-OUT":
            return cls.TIMED_OUT
        return cls.RUNNING


@dataclass(frozen=True)
class SearchQuery:
    """Immutable input to one orchestration run."""

    category_keyword: str
    min_views: int = 0
    platform: Platform | None = None
    language: str = "en"

    def __post_init__(self) -> None:
        if self.min_views < 0:
            raise ValueError(f"min_views must be >= 0, got {self.min_views}")


@dataclass(frozen=True)
class JobHandle:
    run_id: str
    dataset_id: str | None = None


@dataclass(frozen=True)
class NormalizedPost:
    """A single short-form video normalised from any provider."""

    id: str
    url: str
    caption: str
    thumbnail_url: str
    likes: int
    comments: int
    views: int
    shares: int = 0


@dataclass(frozen=True)
class RankedResultSet:
    """Outcome of a single job client run.

    ``posts`` is sorted by views, highest first. ``error`` is set when the run
    degraded to empty because of a provider or transport problem; a genuine
    zero-match search leaves it ``None``.
    """

    platform: Platform
    posts: tuple[NormalizedPost, ...] = ()
    error: str | None = None
    duration_seconds: float = 0.0

    def __len__(self) -> int:
        return len(self.posts)

    def __iter__(self) -> Iterator[NormalizedPost]:
        return iter(self.posts)

    def __getitem__(self, index):
        return self.posts[index]

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class SessionState:
    """Per-requester pagination state over the last ranked result set."""

    requester_id: str
    last_results: tuple[NormalizedPost, ...] = ()
    offset: int = 0
    batch_size: int = 5
    sent: int = 0
    total: int = 0
    stopped: bool = False
    query: SearchQuery | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def remaining(self) -> int:
        return self.total - self.offset
