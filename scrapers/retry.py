from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from core.errors import RetryExhaustion, ScrapeError

log = logging.getLogger(__name__)

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]


async def retry_fixed(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float,
    accept: Callable[[T], bool] = bool,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Call ``fn`` until ``accept`` approves its result, sleeping ``delay``
    seconds between attempts.

    A ``ScrapeError`` raised by ``fn`` counts as a failed attempt; any other
    exception propagates.  Raises ``RetryExhaustion`` once ``attempts`` calls
    have been made.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(ScrapeError) | retry_if_result(lambda r: not accept(r)),
        before_sleep=before_sleep_log(log, logging.DEBUG),
        sleep=sleep,
    )
    try:
        return await retrying(fn)
    except RetryError as exc:
        raise RetryExhaustion(f"{label} gave up after {attempts} attempts", attempts) from exc


async def poll_until(
    check: Callable[[], Awaitable[T | None]],
    *,
    initial: T,
    is_terminal: Callable[[T], bool],
    interval: float,
    attempts: int,
    sleep: Sleep = asyncio.sleep,
    label: str = "poll",
) -> T:
    """Poll ``check`` every ``interval`` seconds until it reports a terminal
    state.

    ``check`` returns ``None`` for a transient failure; the previous state is
    kept and polling continues.  Raises ``RetryExhaustion`` when the state is
    still non-terminal after ``attempts`` checks.
    """
    if is_terminal(initial):
        return initial

    state = initial

    async def step() -> T:
        nonlocal state
        latest = await check()
        if latest is None:
            log.debug("%s: no answer, keeping %s", label, state)
        else:
            state = latest
        return state

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda s: not is_terminal(s)),
        before_sleep=before_sleep_log(log, logging.DEBUG),
        sleep=sleep,
    )
    # The run was just submitted; give it one interval before the first check.
    await sleep(interval)
    try:
        return await retrying(step)
    except RetryError as exc:
        raise RetryExhaustion(f"{label} still not terminal after {attempts} checks", attempts) from exc
