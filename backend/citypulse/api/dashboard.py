from fastapi import APIRouter, Depends

from citypulse.api.deps import get_relay_store
from citypulse.dashboard.status import build_tiles
from citypulse.relay.store import RelayStore

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard")
async def dashboard(store: RelayStore = Depends(get_relay_store)):
    """Neighborhood tiles computed from the current relay set."""
    return [tile.model_dump() for tile in build_tiles(await store.list_relays())]
