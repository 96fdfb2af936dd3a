"""
Live dashboard feed. Follows the relay push channel and keeps tiles current.

DashboardFeed.apply() is pure state handling; watch() owns the socket and
reconnects with capped exponential backoff.
"""

import asyncio
import json
from typing import Any, Callable

import websockets
from pydantic import ValidationError
from websockets.exceptions import WebSocketException

from citypulse.core.logging import get_logger
from citypulse.dashboard.status import NeighborhoodTile, build_tiles
from citypulse.relay.models import RelayPacket

log = get_logger(__name__)

_STATUS_MARKS = {"normal": " ", "elevated": "!", "critical": "‼"}


class DashboardFeed:
    def __init__(self) -> None:
        self._relays: dict[str, RelayPacket] = {}

    @property
    def relays(self) -> list[RelayPacket]:
        return list(self._relays.values())

    def apply(self, event: dict[str, Any]) -> bool:
        """Apply one push frame. Returns False for frames that are not relay events."""
        kind = event.get("type")
        data = event.get("data")
        if kind in ("snapshot", "relay.snapshot"):
            packets = [RelayPacket.model_validate(item) for item in data or []]
            self._relays = {p.id: p for p in packets}
        elif kind in ("relay.created", "relay.updated"):
            packet = RelayPacket.model_validate(data)
            self._relays[packet.id] = packet
        elif kind == "relay.deleted":
            self._relays.pop((data or {}).get("id"), None)
        else:
            return False
        return True

    def tiles(self) -> list[NeighborhoodTile]:
        return build_tiles(self.relays)


def render_tiles(tiles: list[NeighborhoodTile]) -> str:
    lines = []
    for tile in tiles:
        lines.append(f"{_STATUS_MARKS[tile.status]} {tile.name:<14} {tile.label}")
        for relay in tile.relays:
            lines.append(f"    - {relay.headline}: {relay.detail}")
    return "\n".join(lines)


async def watch(
    ws_url: str,
    on_update: Callable[[list[NeighborhoodTile]], None],
    *,
    feed: DashboardFeed | None = None,
    reconnect_delay: float = 2.0,
    max_reconnect_delay: float = 30.0,
) -> None:
    """Follow the push channel forever, calling on_update after every applied frame."""
    feed = feed or DashboardFeed()
    delay = reconnect_delay
    while True:
        try:
            async with websockets.connect(ws_url) as ws:
                log.info("dashboard_connected", url=ws_url)
                delay = reconnect_delay
                async for raw in ws:
                    try:
                        frame = json.loads(raw)
                        if not isinstance(frame, dict):
                            raise ValueError("frame is not an object")
                        applied = feed.apply(frame)
                    except (ValueError, ValidationError) as exc:
                        log.warning("dashboard_bad_frame", frame=str(raw)[:120], error=str(exc))
                        continue
                    if applied:
                        on_update(feed.tiles())
        except (WebSocketException, OSError) as exc:
            log.warning("dashboard_disconnected", error=str(exc), retry_in=delay)
        await asyncio.sleep(delay)
        delay = min(delay * 2, max_reconnect_delay)
