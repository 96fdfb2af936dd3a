"""
In-memory relay store.

A single process-wide mapping id → packet behind an asyncio.Lock. Every
mutation is pushed to the broadcaster after the lock is released. Nothing is
persisted; a restart starts empty.
"""

import asyncio

from citypulse.core.logging import get_logger
from citypulse.relay.broadcast import RelayBroadcaster
from citypulse.relay.models import (
    RelayCreate,
    RelayEvent,
    RelayPacket,
    RelayPatch,
    utc_timestamp,
)

log = get_logger(__name__)

# Demo packet installed by POST /seed
SEED_PACKETS: tuple[RelayCreate, ...] = (
    RelayCreate(
        id="relay_sodo_demo",
        origin="SoDo",
        targets=["PioneerSquare", "Ballard"],
        category="accident",
        impact_score=0.87,
        urgency="urgent",
        window="now→+45m",
        requested_actions=[
            "Pre-stage ambulances in Pioneer Square",
            "Reroute freight via Spokane St detour",
        ],
        notes="Multi-vehicle crash near Lumen Field exit.",
    ),
)


class RelayStore:
    def __init__(self, broadcaster: RelayBroadcaster | None = None) -> None:
        self.broadcaster = broadcaster or RelayBroadcaster()
        self._relays: dict[str, RelayPacket] = {}
        self._lock = asyncio.Lock()

    def count(self) -> int:
        return len(self._relays)

    async def list_relays(self) -> list[RelayPacket]:
        async with self._lock:
            return list(self._relays.values())

    async def get(self, relay_id: str) -> RelayPacket | None:
        async with self._lock:
            return self._relays.get(relay_id)

    async def create(self, req: RelayCreate) -> RelayPacket:
        """Insert a packet; an existing id is replaced (ingest jobs re-post each cycle)."""
        packet = RelayPacket.from_create(req)
        async with self._lock:
            replaced = packet.id in self._relays
            self._relays[packet.id] = packet
        log.info("relay_created", relay_id=packet.id, origin=packet.origin, replaced=replaced)
        await self.broadcaster.publish(RelayEvent(type="relay.created", data=packet))
        return packet

    async def update(self, relay_id: str, patch: RelayPatch) -> RelayPacket | None:
        async with self._lock:
            current = self._relays.get(relay_id)
            if current is None:
                return None
            updated = current.model_copy(
                update={
                    "status": patch.status if patch.status is not None else current.status,
                    "notes": patch.notes if patch.notes is not None else current.notes,
                    "updated_at": utc_timestamp(),
                }
            )
            self._relays[relay_id] = updated
        log.info("relay_updated", relay_id=relay_id, status=updated.status)
        await self.broadcaster.publish(RelayEvent(type="relay.updated", data=updated))
        return updated

    async def delete(self, relay_id: str) -> RelayPacket | None:
        async with self._lock:
            removed = self._relays.pop(relay_id, None)
        if removed is None:
            return None
        log.info("relay_deleted", relay_id=relay_id)
        await self.broadcaster.publish(RelayEvent(type="relay.deleted", data=removed))
        return removed

    async def seed(self) -> int:
        async with self._lock:
            for req in SEED_PACKETS:
                packet = RelayPacket.from_create(req, status="queued")
                self._relays[packet.id] = packet
            snapshot = list(self._relays.values())
        log.info("relay_seeded", count=len(SEED_PACKETS))
        await self.broadcaster.publish(RelayEvent(type="relay.snapshot", data=snapshot))
        return len(SEED_PACKETS)

    async def subscribe(self, subscriber) -> None:
        """Register a push subscriber and send it the current snapshot."""
        snapshot = await self.list_relays()
        await self.broadcaster.subscribe(subscriber, snapshot)
