from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from core.conversation import ConversationService
from core.delivery import state_of
from core.errors import ConfigurationError
from core.models import Platform, SearchQuery

router = APIRouter(prefix="/api", tags=["search"])


class SearchRequest(BaseModel):
    requester_id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    platform: Platform | None = None
    language: str = Field("en", pattern="^(en|fa)$")
    min_views: int = Field(0, ge=0)


class StopRequest(BaseModel):
    name: str = ""


def _service(request: Request) -> ConversationService:
    return request.app.state.service


@router.post("/search")
async def start_search(body: SearchRequest, request: Request):
    query = SearchQuery(
        category_keyword=body.category,
        min_views=body.min_views,
        platform=body.platform,
        language=body.language,
    )
    try:
        reply = await _service(request).start_search(body.requester_id, query)
    except ConfigurationError as e:
        raise HTTPException(503, str(e))
    return reply.to_dict()


@router.post("/sessions/{requester_id}/next")
async def next_page(requester_id: str, request: Request):
    reply = await _service(request).next_page(requester_id)
    return reply.to_dict()


@router.post("/sessions/{requester_id}/stop")
async def stop(requester_id: str, request: Request, body: StopRequest | None = None):
    reply = await _service(request).stop(requester_id, name=body.name if body else "")
    return reply.to_dict()


@router.get("/sessions/{requester_id}")
async def get_session(requester_id: str, request: Request):
    session = _service(request).store.get(requester_id)
    if session is None:
        raise HTTPException(404, f"No session for requester: {requester_id}")
    query = session.query
    return {
        "requester_id": session.requester_id,
        "state": state_of(session).value,
        "offset": session.offset,
        "sent": session.sent,
        "total": session.total,
        "batch_size": session.batch_size,
        "stopped": session.stopped,
        "platform": query.platform.value if query and query.platform else None,
        "keyword": query.category_keyword if query else None,
        "min_views": query.min_views if query else None,
        "updated_at": session.updated_at.isoformat(),
    }
