"""Thin async client for the Apify v2 REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.errors import ConfigurationError, ParseError, TransportError
from core.models import JobHandle, JobStatus, RawItem

log = logging.getLogger(__name__)


class ApifyClient:
    """One client per run; use as ``async with ApifyClient(...) as api``."""

    def __init__(
        self,
        token: str,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ConfigurationError("APIFY_API_TOKEN is not set")
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": "ViralScout/1.0",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ApifyClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- low-level request helper ---
    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout: float | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        kwargs: dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path}: {exc!r}") from exc

        log.debug("%s %s -> HTTP %d", method, path, resp.status_code)
        if resp.status_code >= 400:
            raise TransportError(
                f"HTTP {resp.status_code} from {method} {path}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ParseError(f"invalid JSON from {method} {path}") from exc

    @staticmethod
    def _run_data(body: Any) -> dict[str, Any]:
        if not isinstance(body, dict):
            raise ParseError("run response is not an object")
        if body.get("error"):
            raise ParseError(f"provider error: {body['error']}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise ParseError("run response has no 'data' object")
        return data

    @staticmethod
    def _items(body: Any, what: str) -> list[RawItem]:
        if not isinstance(body, list):
            raise ParseError(f"{what} is not a list")
        return [item for item in body if isinstance(item, dict)]

    # --- job provider operations ---
    async def start_run(
        self, actor: str, payload: dict[str, Any]
    ) -> tuple[JobHandle, JobStatus]:
        data = self._run_data(await self._request("POST", f"/acts/{actor}/runs", json=payload))
        run_id = data.get("id")
        if not run_id:
            raise ParseError("run response has no run id")
        handle = JobHandle(run_id=str(run_id), dataset_id=data.get("defaultDatasetId") or None)
        return handle, JobStatus.from_provider(data.get("status"))

    async def run_status(self, run_id: str, *, timeout: float | None = None) -> JobStatus:
        data = self._run_data(
            await self._request("GET", f"/actor-runs/{run_id}", timeout=timeout)
        )
        return JobStatus.from_provider(data.get("status"))

    async def dataset_items(self, dataset_id: str) -> list[RawItem]:
        body = await self._request("GET", f"/datasets/{dataset_id}/items")
        return self._items(body, "dataset")

    async def run_sync(self, actor: str, payload: dict[str, Any]) -> list[RawItem]:
        body = await self._request(
            "POST", f"/acts/{actor}/run-sync-get-dataset-items", json=payload
        )
        return self._items(body, "run-sync dataset")
