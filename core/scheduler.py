from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config.settings import settings
from data.sessions import SessionStore

log = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep_sessions"


class MaintenanceScheduler:
    """Periodic housekeeping: evicts sessions nobody has touched lately."""

    def __init__(
        self,
        store: SessionStore,
        *,
        idle_minutes: int | None = None,
        sweep_minutes: int | None = None,
    ) -> None:
        self._store = store
        self._idle_minutes = idle_minutes or settings.SESSION_IDLE_MINUTES
        self._sweep_minutes = sweep_minutes or settings.SESSION_SWEEP_MINUTES
        self._scheduler = AsyncIOScheduler()
        self._last_sweep: dict | None = None

    def start(self) -> None:
        self._scheduler.add_job(
            self.sweep_sessions,
            "interval",
            minutes=self._sweep_minutes,
            id=SWEEP_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        log.info(
            "Maintenance scheduler started (sweep every %d min, idle limit %d min)",
            self._sweep_minutes,
            self._idle_minutes,
        )

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def sweep_sessions(self) -> int:
        evicted = self._store.evict_idle(self._idle_minutes * 60)
        self._last_sweep = {
            "at": datetime.now(timezone.utc).isoformat(),
            "evicted": evicted,
            "remaining": len(self._store),
        }
        log.debug("Session sweep: %d evicted, %d active", evicted, len(self._store))
        return evicted

    def get_status(self) -> dict:
        job = self._scheduler.get_job(SWEEP_JOB_ID)
        next_sweep = job.next_run_time if job is not None else None
        return {
            "running": self._scheduler.running,
            "sessions": len(self._store),
            "idle_limit_minutes": self._idle_minutes,
            "sweep_every_minutes": self._sweep_minutes,
            "next_sweep": next_sweep.isoformat() if next_sweep else None,
            "last_sweep": self._last_sweep,
        }
