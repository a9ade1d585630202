import pytest
from fastapi.testclient import TestClient

from api.app import Broadcaster, create_app
from conftest import post
from core.analytics import AnalyticsEmitter
from core.conversation import ConversationService
from core.errors import ConfigurationError
from core.models import Platform, RankedResultSet, SearchQuery
from core.scheduler import MaintenanceScheduler
from data.sessions import SessionStore
from scrapers.orchestrator import SearchOrchestrator


class FixedClient:
    def __init__(self, platform: Platform, count: int = 7, error: Exception | None = None) -> None:
        self.platform = platform
        self.count = count
        self.error = error

    async def run(self, query: SearchQuery) -> RankedResultSet:
        if self.error:
            raise self.error
        posts = tuple(post(1_000 * (self.count - n), n) for n in range(self.count))
        return RankedResultSet(platform=self.platform, posts=posts)


def make_client(**overrides) -> TestClient:
    broadcaster = Broadcaster()
    clients = {p: overrides.get(p.value) or FixedClient(p) for p in Platform}
    service = ConversationService(
        SearchOrchestrator(clients, progress_interval=60),
        SessionStore(),
        analytics=AnalyticsEmitter("", "", broadcast_fn=broadcaster.broadcast),
        broadcast_fn=broadcaster.broadcast,
        batch_size=5,
    )
    return TestClient(create_app(service=service, broadcaster=broadcaster))


@pytest.fixture
def client() -> TestClient:
    return make_client()


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/health").json() == {"status": "ok"}
    assert client.get("/").json()["status"] == "ok"


def test_search_then_page_through(client) -> None:
    resp = client.post(
        "/api/search",
        json={"requester_id": "u1", "category": "cat_serum", "platform": "tiktok", "min_views": 0},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "more_pending"
    assert len(body["posts"]) == 5
    assert body["posts"][0]["views"] == 7_000
    assert len(body["messages"]) == 5

    nxt = client.post("/api/sessions/u1/next").json()
    assert nxt["state"] == "exhausted"
    assert nxt["start_index"] == 6
    assert [p["views"] for p in nxt["posts"]] == [2_000, 1_000]

    again = client.post("/api/sessions/u1/next").json()
    assert again["posts"] == []

    session = client.get("/api/sessions/u1").json()
    assert session["offset"] == 7
    assert session["platform"] == "tiktok"
    assert session["keyword"] == "cat_serum"


def test_search_rejects_bad_input(client) -> None:
    assert client.post("/api/search", json={"requester_id": "u1", "category": "x", "min_views": -1}).status_code == 422
    assert client.post("/api/search", json={"requester_id": "u1", "category": "x", "language": "de"}).status_code == 422
    assert client.post("/api/search", json={"requester_id": "u1", "category": "x", "platform": "vine"}).status_code == 422


def test_missing_token_is_service_unavailable() -> None:
    client = make_client(instagram=FixedClient(Platform.INSTAGRAM, error=ConfigurationError("APIFY_API_TOKEN is not set")))
    resp = client.post("/api/search", json={"requester_id": "u1", "category": "x"})
    assert resp.status_code == 503
    assert "APIFY_API_TOKEN" in resp.json()["detail"]


def test_stop_and_unknown_session(client) -> None:
    assert client.get("/api/sessions/ghost").status_code == 404

    client.post("/api/search", json={"requester_id": "u1", "category": "x"})
    body = client.post("/api/sessions/u1/stop", json={"name": "Sara"}).json()
    assert body["state"] == "stopped"
    assert body["prompt"].startswith("Sara, ")
    assert client.post("/api/sessions/u1/next").json()["state"] == "stopped"


def test_stats_reflect_searches(client) -> None:
    client.post("/api/search", json={"requester_id": "u1", "category": "cat_serum"})
    client.post("/api/search", json={"requester_id": "u2", "category": "cat_serum", "platform": "youtube"})

    stats = client.get("/api/stats").json()
    assert stats["totalMessages"] == 2
    assert stats["totalUsers"] == 2
    assert stats["activeChannels"] == 2

    dist = client.get("/api/searches/distribution").json()
    assert dist["platforms"] == {"instagram": 1, "youtube": 1}
    assert dist["categories"] == {"serum": 2}

    assert len(client.get("/api/searches/recent", params={"limit": 1}).json()) == 1
    assert len(client.get("/api/searches/logs").json()) == 2
    assert len(client.get("/api/searches/daily", params={"days": 3}).json()) == 3


def test_maintenance_without_scheduler(client) -> None:
    status = client.get("/api/maintenance/status").json()
    assert status["running"] is False
    assert client.post("/api/maintenance/sweep").status_code == 503


def test_maintenance_sweep_with_scheduler(client) -> None:
    client.post("/api/search", json={"requester_id": "u1", "category": "x"})
    app = client.app
    app.state.scheduler = MaintenanceScheduler(app.state.service.store, idle_minutes=60)

    body = client.post("/api/maintenance/sweep").json()
    assert body == {"evicted": 0, "sessions": 1}


@pytest.mark.asyncio
async def test_broadcaster_routes_events_to_followers() -> None:
    broadcaster = Broadcaster(queue_size=1)
    everyone = broadcaster.subscribe()
    only_u1 = broadcaster.subscribe("u1")

    await broadcaster.broadcast({"event": "progress", "requester_id": "u2", "percent": 10})
    await broadcaster.broadcast({"event": "progress", "requester_id": "u1", "percent": 25})

    assert only_u1.get_nowait()["percent"] == 25
    # queue_size=1: the second event is dropped for the full subscriber only
    assert everyone.get_nowait()["percent"] == 10
    assert everyone.empty()

    broadcaster.unsubscribe(only_u1)
    broadcaster.unsubscribe(only_u1)
    assert len(broadcaster) == 1


def test_maintenance_status_with_scheduler(client) -> None:
    app = client.app
    app.state.scheduler = MaintenanceScheduler(app.state.service.store, idle_minutes=45, sweep_minutes=10)
    client.post("/api/maintenance/sweep")

    status = client.get("/api/maintenance/status").json()
    assert status["idle_limit_minutes"] == 45
    assert status["sweep_every_minutes"] == 10
    assert status["last_sweep"]["evicted"] == 0
