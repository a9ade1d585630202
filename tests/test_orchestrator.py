import asyncio

import pytest

from conftest import post
from core.errors import ConfigurationError
from core.models import Platform, RankedResultSet, SearchQuery
from scrapers.orchestrator import SearchOrchestrator
from scrapers.progress import ProgressReporter

pytestmark = pytest.mark.asyncio


class StubClient:
    def __init__(self, platform: Platform, *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.platform = platform
        self.delay = delay
        self.error = error
        self.queries: list[SearchQuery] = []

    async def run(self, query: SearchQuery) -> RankedResultSet:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return RankedResultSet(platform=self.platform, posts=(post(100, 1),))


def orchestrator(**clients) -> SearchOrchestrator:
    stubs = {p: clients.get(p.value) or StubClient(p) for p in Platform}
    return SearchOrchestrator(stubs, progress_interval=0.01)


async def test_dispatches_on_platform() -> None:
    tiktok = StubClient(Platform.TIKTOK)
    orch = orchestrator(tiktok=tiktok)
    result = await orch.search(SearchQuery("dance", platform=Platform.TIKTOK))
    assert result.platform is Platform.TIKTOK
    assert len(tiktok.queries) == 1


async def test_unset_platform_defaults_to_instagram() -> None:
    instagram = StubClient(Platform.INSTAGRAM)
    orch = orchestrator(instagram=instagram)
    result = await orch.search(SearchQuery("serum"))
    assert result.platform is Platform.INSTAGRAM
    assert instagram.queries[0].category_keyword == "serum"


async def test_progress_reporter_stops_when_search_returns() -> None:
    percents: list[int] = []

    async def progress(percent: int) -> None:
        percents.append(percent)

    orch = orchestrator(youtube=StubClient(Platform.YOUTUBE, delay=0.035))
    await orch.search(SearchQuery("x", platform=Platform.YOUTUBE), progress=progress)
    settled = list(percents)
    await asyncio.sleep(0.05)

    assert percents == settled
    assert percents[0] == 0
    assert percents[-1] == 100
    assert percents == sorted(percents)
    assert 90 not in percents


async def test_progress_reporter_is_cancelled_on_error() -> None:
    percents: list[int] = []

    async def progress(percent: int) -> None:
        percents.append(percent)

    failing = StubClient(Platform.INSTAGRAM, delay=0.015, error=ConfigurationError("no token"))
    orch = orchestrator(instagram=failing)
    with pytest.raises(ConfigurationError):
        await orch.search(SearchQuery("x"), progress=progress)
    await asyncio.sleep(0.05)

    assert 100 not in percents
    assert all(p < 50 for p in percents)


async def test_failing_progress_emit_does_not_affect_search() -> None:
    async def progress(percent: int) -> None:
        raise RuntimeError("transcript gone")

    orch = orchestrator()
    result = await orch.search(SearchQuery("x"), progress=progress)
    assert len(result) == 1


async def test_stuck_emit_never_blocks_the_caller() -> None:
    release = asyncio.Event()

    async def stuck(percent: int) -> None:
        if percent == 10:
            await release.wait()

    reporter = ProgressReporter(stuck, interval=0.0, join_timeout=0.05)
    async with reporter:
        await asyncio.sleep(0.01)
        assert reporter.running
    assert not reporter.running


async def test_search_returns_when_first_emit_hangs() -> None:
    release = asyncio.Event()
    percents: list[int] = []

    async def stuck_at_start(percent: int) -> None:
        percents.append(percent)
        if percent == 0:
            await release.wait()

    orch = orchestrator()
    result = await asyncio.wait_for(orch.search(SearchQuery("x"), progress=stuck_at_start), 0.5)

    assert len(result) == 1
    assert percents == [0, 100]


async def test_search_returns_when_final_emit_hangs() -> None:
    release = asyncio.Event()

    async def stuck_at_end(percent: int) -> None:
        if percent == 100:
            await release.wait()

    reporter = ProgressReporter(stuck_at_end, interval=60, join_timeout=0.05)

    async def guarded() -> str:
        async with reporter:
            await asyncio.sleep(0)
        return "done"

    assert await asyncio.wait_for(guarded(), 0.5) == "done"
    assert not reporter.running
