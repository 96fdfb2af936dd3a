"""
Push fan-out to dashboard subscribers.

Every connected WebSocket gets a snapshot on subscribe and then every relay
event as it happens. Sockets that fail a send are dropped.
"""

import asyncio
from typing import Any, Protocol

from citypulse.core.logging import get_logger
from citypulse.relay.models import RelayEvent, RelayPacket

log = get_logger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class RelayBroadcaster:
    def __init__(self) -> None:
        self._subscribers: set[Subscriber] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, subscriber: Subscriber, snapshot: list[RelayPacket]) -> None:
        self._subscribers.add(subscriber)
        log.info("listener_connected", listeners=len(self._subscribers))
        await self._send(subscriber, RelayEvent(type="snapshot", data=snapshot).to_wire())

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)
        log.info("listener_disconnected", listeners=len(self._subscribers))

    async def publish(self, event: RelayEvent) -> None:
        if not self._subscribers:
            return
        message = event.to_wire()
        await asyncio.gather(*(self._send(s, message) for s in list(self._subscribers)))

    async def _send(self, subscriber: Subscriber, message: dict) -> None:
        try:
            await subscriber.send_json(message)
        except Exception as exc:  # noqa: BLE001
            self._subscribers.discard(subscriber)
            log.warning("listener_dropped", error=str(exc))
