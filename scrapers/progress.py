from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

log = logging.getLogger(__name__)

ProgressFn = Callable[[int], Awaitable[None]]

DEFAULT_MILESTONES: tuple[int, ...] = (10, 25, 50, 75, 90)


class ProgressReporter:
    """Emits coarse percentage milestones while a search runs.

    Use as an async context manager around the blocking call.  ``0`` and the
    milestones are emitted from a ticker task; on exit the ticker is cancelled
    and joined for at most ``join_timeout`` seconds.  ``100`` is emitted only
    when the wrapped block finished without raising, and is abandoned after
    ``join_timeout`` seconds, so a slow or stuck ``emit`` never holds up the
    caller.
    """

    def __init__(
        self,
        emit: ProgressFn,
        *,
        interval: float = 5.0,
        milestones: Sequence[int] = DEFAULT_MILESTONES,
        join_timeout: float = 1.0,
    ) -> None:
        self._emit = emit
        self._interval = interval
        self._milestones = tuple(milestones)
        self._join_timeout = join_timeout
        self._task: asyncio.Task | None = None

    async def __aenter__(self) -> ProgressReporter:
        self._task = asyncio.create_task(self._tick())
        # Let the ticker emit 0 before the wrapped call starts.
        await asyncio.sleep(0)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
        if exc_type is None:
            try:
                await asyncio.wait_for(self._safe_emit(100), timeout=self._join_timeout)
            except asyncio.TimeoutError:
                log.warning("Progress emit 100%% did not finish within %.1fs", self._join_timeout)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        done, _ = await asyncio.wait({task}, timeout=self._join_timeout)
        if not done:
            log.warning("Progress reporter did not stop within %.1fs", self._join_timeout)

    async def _tick(self) -> None:
        await self._safe_emit(0)
        for percent in self._milestones:
            await asyncio.sleep(self._interval)
            await self._safe_emit(percent)

    async def _safe_emit(self, percent: int) -> None:
        try:
            await self._emit(percent)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.debug("Progress emit %d%% failed: %s", percent, e)
