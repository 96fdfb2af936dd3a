"""
Server-side agent tools.

Tools are registered with the LLM via bind_tools() and executed by the tools
node. They talk to the relay service over HTTP, so the agent sees the same
packets as the dashboard.

Current tools:
  - list_active_relays:      unresolved relays, optionally for one neighborhood
  - get_neighborhood_status: the dashboard tile for one neighborhood
  - update_relay_status:     move a relay through its lifecycle
"""

import json

from langchain_core.tools import tool

from citypulse.dashboard.status import build_tiles
from citypulse.neighborhoods import NEIGHBORHOODS
from citypulse.relay.client import RelayClient
from citypulse.relay.models import RelayPatch, RelayStatus


def _relay_client() -> RelayClient:
    return RelayClient()


def _resolve_hood_id(neighborhood: str) -> str | None:
    key = neighborhood.strip().lower()
    for hood in NEIGHBORHOODS:
        if key in (hood.id.lower(), hood.name.lower()):
            return hood.id
    return None


@tool
async def list_active_relays(neighborhood: str | None = None) -> str:
    """
    List relay packets that are not yet resolved.

    Args:
        neighborhood: Optional neighborhood id or name (e.g. "sodo", "Capitol Hill")
                      to restrict results to relays originating in or targeting it.

    Returns:
        A JSON array of relays with id, origin, targets, category, impact, urgency and status.
    """
    hood_id = _resolve_hood_id(neighborhood) if neighborhood else None
    if neighborhood and hood_id is None:
        return f"Unknown neighborhood: {neighborhood}"

    async with _relay_client() as client:
        relays = await client.fetch_relays()

    active = [
        r for r in relays
        if r.status != "resolved" and (hood_id is None or r.touches(hood_id))
    ]
    return json.dumps(
        [
            {
                "id": r.id,
                "origin": r.origin,
                "targets": r.targets,
                "category": r.category,
                "impactScore": r.impact_score,
                "urgency": r.urgency,
                "status": r.status,
                "notes": r.notes,
            }
            for r in active
        ]
    )


@tool
async def get_neighborhood_status(neighborhood: str) -> str:
    """
    Return the current dashboard status for one neighborhood.

    Args:
        neighborhood: Neighborhood id or name.

    Returns:
        JSON with the status level (normal / elevated / critical) and up to three impacting relays.
    """
    hood_id = _resolve_hood_id(neighborhood)
    if hood_id is None:
        return f"Unknown neighborhood: {neighborhood}"

    async with _relay_client() as client:
        relays = await client.fetch_relays()

    tile = next(t for t in build_tiles(relays) if t.id == hood_id)
    return tile.model_dump_json()


@tool
async def update_relay_status(relay_id: str, status: RelayStatus, notes: str | None = None) -> str:
    """
    Update a relay's lifecycle status.

    Args:
        relay_id: The relay id, e.g. "relay_sodo_demo".
        status:   One of detected, queued, acknowledged, in_action, resolved.
        notes:    Optional note to store on the relay.

    Returns:
        The updated relay as JSON, or a not-found message.
    """
    async with _relay_client() as client:
        packet = await client.patch_relay(relay_id, RelayPatch(status=status, notes=notes))
    if packet is None:
        return f"Relay {relay_id} not found."
    return json.dumps(packet.to_wire())


# Exported list, bound to the model by the agent runtime
SERVER_TOOLS = [list_active_relays, get_neighborhood_status, update_relay_status]
