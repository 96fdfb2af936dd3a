"""Relay packet schemas: the common alert envelope shared by ingest, relay and dashboard."""

import secrets
import string
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RelayStatus = Literal["detected", "queued", "acknowledged", "in_action", "resolved"]
Urgency = Literal["normal", "urgent"]
RelayEventType = Literal[
    "snapshot",
    "relay.snapshot",
    "relay.created",
    "relay.updated",
    "relay.deleted",
]

_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


def new_relay_id() -> str:
    return "relay_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))


def utc_timestamp(when: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z. Defaults to now."""
    when = when.astimezone(timezone.utc) if when is not None else datetime.now(timezone.utc)
    return when.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RelayCreate(_CamelModel):
    """POST /relay body. Everything but `origin` has a default."""
    id: str | None = None
    origin: str
    targets: list[str] = Field(default_factory=list)
    category: str = "general"
    impact_score: float = Field(default=0.0, ge=0.0, le=1.0)
    urgency: Urgency = "normal"
    window: str = "now"
    requested_actions: list[str] = Field(default_factory=list)
    notes: str | None = None


class RelayPatch(_CamelModel):
    status: RelayStatus | None = None
    notes: str | None = None


class RelayPacket(_CamelModel):
    id: str
    origin: str
    targets: list[str]
    category: str
    impact_score: float
    urgency: Urgency
    window: str
    requested_actions: list[str]
    status: RelayStatus
    created_at: str
    updated_at: str
    notes: str | None = None

    @classmethod
    def from_create(cls, req: RelayCreate, *, status: RelayStatus = "detected") -> "RelayPacket":
        now = utc_timestamp()
        return cls(
            id=req.id or new_relay_id(),
            origin=req.origin,
            targets=list(req.targets),
            category=req.category,
            impact_score=req.impact_score,
            urgency=req.urgency,
            window=req.window,
            requested_actions=list(req.requested_actions),
            status=status,
            created_at=now,
            updated_at=now,
            notes=req.notes,
        )

    def touches(self, hood_id: str) -> bool:
        return self.origin == hood_id or hood_id in self.targets


class RelayEvent(BaseModel):
    """Push-channel frame: one packet for created/updated/deleted, the full list for snapshots."""
    type: RelayEventType
    data: RelayPacket | list[RelayPacket]

    def to_wire(self) -> dict:
        if isinstance(self.data, list):
            data = [p.to_wire() for p in self.data]
        else:
            data = self.data.to_wire()
        return {"type": self.type, "data": data}
