from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


@router.get("/status")
async def scheduler_status(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return {"running": False, "sessions": len(request.app.state.service.store), "last_sweep": None}
    return scheduler.get_status()


@router.post("/sweep")
async def sweep(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(503, "Scheduler not initialized")
    evicted = await scheduler.sweep_sessions()
    return {"evicted": evicted, "sessions": len(request.app.state.service.store)}
