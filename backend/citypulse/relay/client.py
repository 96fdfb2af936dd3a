"""HTTP client for the relay service, used by ingest jobs, the dashboard watcher and agent tools."""

from typing import Any

import httpx

from citypulse.core.config import get_settings
from citypulse.relay.models import RelayCreate, RelayPacket, RelayPatch


def relay_ws_url(base_url: str) -> str:
    """http(s)://host → ws(s)://host/ws"""
    base_url = base_url.rstrip("/")
    if base_url.startswith("http"):
        return "ws" + base_url[len("http"):] + "/ws"
    return base_url + "/ws"


class RelayPostError(RuntimeError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Relay POST failed: {status_code} {body}")
        self.status_code = status_code
        self.body = body


class RelayClient:
    """
    Thin async wrapper over the relay REST API.

    Pass `transport` to route requests somewhere other than the network
    (tests use httpx.MockTransport or an ASGI transport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or get_settings().relay_base_url).rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def ws_url(self) -> str:
        return relay_ws_url(self.base_url)

    async def post_relay(self, payload: RelayCreate) -> RelayPacket:
        resp = await self._client.post("/relay", json=payload.to_wire())
        if resp.is_error:
            raise RelayPostError(resp.status_code, resp.text)
        return RelayPacket.model_validate(resp.json())

    async def fetch_relays(self) -> list[RelayPacket]:
        resp = await self._client.get("/relay")
        resp.raise_for_status()
        return [RelayPacket.model_validate(item) for item in resp.json()]

    async def patch_relay(self, relay_id: str, patch: RelayPatch) -> RelayPacket | None:
        resp = await self._client.patch(f"/relay/{relay_id}", json=patch.to_wire())
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return RelayPacket.model_validate(resp.json())
