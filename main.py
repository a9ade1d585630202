"""Viral Scout: entry point."""

from __future__ import annotations

import logging

import uvicorn

from api.app import create_app
from config.settings import settings
from core.scheduler import MaintenanceScheduler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger(__name__)

app = create_app()


@app.on_event("startup")
async def on_startup() -> None:
    if not settings.APIFY_API_TOKEN:
        log.warning("APIFY_API_TOKEN is not set; searches will be rejected")

    log.info("Starting maintenance scheduler…")
    scheduler = MaintenanceScheduler(app.state.service.store)
    app.state.scheduler = scheduler
    scheduler.start()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if hasattr(app.state, "scheduler"):
        app.state.scheduler.stop()
        log.info("Maintenance scheduler stopped.")
    await app.state.service.analytics.aclose()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=False,
    )
