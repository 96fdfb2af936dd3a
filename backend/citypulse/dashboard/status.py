"""
Per-neighborhood status tiles derived from the live relay set.

    critical: an unresolved relay touching the hood is urgent or has impact ≥ 0.8
    elevated: any unresolved relay touches the hood
    normal  : nothing active
"""

from typing import Iterable, Literal

from pydantic import BaseModel

from citypulse.neighborhoods import NEIGHBORHOODS
from citypulse.relay.models import RelayPacket

StatusLevel = Literal["normal", "elevated", "critical"]

CRITICAL_IMPACT = 0.8
MAX_TILE_RELAYS = 3

STATUS_LABELS: dict[str, str] = {
    "normal": "Normal",
    "elevated": "Elevated",
    "critical": "Critical",
}


class TileRelay(BaseModel):
    id: str
    headline: str
    detail: str


class NeighborhoodTile(BaseModel):
    id: str
    name: str
    description: str
    personas: list[str]
    status: StatusLevel
    label: str
    relays: list[TileRelay]


def _active_for(hood_id: str, relays: Iterable[RelayPacket]) -> list[RelayPacket]:
    return [r for r in relays if r.status != "resolved" and r.touches(hood_id)]


def determine_status(hood_id: str, relays: Iterable[RelayPacket]) -> StatusLevel:
    relevant = _active_for(hood_id, relays)
    if any(r.urgency == "urgent" or r.impact_score >= CRITICAL_IMPACT for r in relevant):
        return "critical"
    if relevant:
        return "elevated"
    return "normal"


def headline_for(category: str) -> str:
    return category.replace("weather:", "", 1).replace("-", " ")


def build_tiles(relays: Iterable[RelayPacket]) -> list[NeighborhoodTile]:
    relays = list(relays)
    tiles = []
    for hood in NEIGHBORHOODS:
        status = determine_status(hood.id, relays)
        impacting = _active_for(hood.id, relays)[:MAX_TILE_RELAYS]
        tiles.append(
            NeighborhoodTile(
                id=hood.id,
                name=hood.name,
                description=hood.description,
                personas=list(hood.personas),
                status=status,
                label=STATUS_LABELS[status],
                relays=[
                    TileRelay(
                        id=r.id,
                        headline=headline_for(r.category),
                        detail=r.notes or (r.requested_actions[0] if r.requested_actions else ""),
                    )
                    for r in impacting
                ],
            )
        )
    return tiles
