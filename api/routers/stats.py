from __future__ import annotations

from fastapi import APIRouter, Query, Request

from core.tracking import SearchTracker

router = APIRouter(prefix="/api", tags=["stats"])


def _tracker(request: Request) -> SearchTracker:
    return request.app.state.service.tracker


def _record_to_dict(r) -> dict:
    return {
        "id": r.id,
        "requester_id": r.requester_id,
        "platform": r.platform,
        "category": r.category,
        "language": r.language,
        "min_views": r.min_views,
        "results_count": r.results_count,
        "timestamp": r.timestamp.isoformat(),
        "status": r.status.value,
    }


@router.get("/stats")
async def stats(request: Request):
    tracker = _tracker(request)
    return {
        "totalMessages": tracker.total_searches(),
        "totalUsers": tracker.unique_users(),
        "activeChannels": tracker.active_channels(),
        "viralScore": tracker.viral_score(),
    }


@router.get("/content")
async def content(request: Request, limit: int = Query(50, ge=1, le=500)):
    return [_record_to_dict(r) for r in _tracker(request).recent(limit=limit)]


@router.get("/searches/recent")
async def recent_searches(request: Request, limit: int = Query(50, ge=1, le=500)):
    return [_record_to_dict(r) for r in _tracker(request).recent(limit=limit)]


@router.get("/searches/logs")
async def search_logs(request: Request):
    return _tracker(request).logs()


@router.get("/searches/distribution")
async def distribution(request: Request):
    tracker = _tracker(request)
    return {
        "platforms": tracker.platform_distribution(),
        "categories": tracker.category_distribution(),
        "languages": tracker.language_distribution(),
    }


@router.get("/searches/daily")
async def daily(request: Request, days: int = Query(7, ge=1, le=90)):
    return _tracker(request).daily(days)
