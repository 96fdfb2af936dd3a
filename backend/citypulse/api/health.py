from fastapi import APIRouter, Depends

from citypulse.api.deps import get_relay_store
from citypulse.relay.store import RelayStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(store: RelayStore = Depends(get_relay_store)):
    """Liveness probe. Reports how many relays are held in memory."""
    return {"ok": True, "relays": store.count()}
