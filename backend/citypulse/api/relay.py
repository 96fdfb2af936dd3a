"""
Relay service endpoints.

    GET    /relay           all packets
    POST   /relay           create (201); an existing id is replaced
    PATCH  /relay/{id}      status / notes
    DELETE /relay/{id}      204
    POST   /seed            install the demo packet, broadcast a snapshot
    WS     /ws              snapshot on connect, then every relay event
"""

from fastapi import APIRouter, Depends, Response, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse

from citypulse.api.deps import get_relay_store
from citypulse.core.logging import get_logger
from citypulse.relay.models import RelayCreate, RelayPatch
from citypulse.relay.store import RelayStore

log = get_logger(__name__)
router = APIRouter(tags=["relay"])


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "not_found"})


@router.get("/relay")
async def list_relays(store: RelayStore = Depends(get_relay_store)):
    return [p.to_wire() for p in await store.list_relays()]


@router.post("/relay", status_code=status.HTTP_201_CREATED)
async def create_relay(req: RelayCreate, store: RelayStore = Depends(get_relay_store)):
    packet = await store.create(req)
    return packet.to_wire()


@router.patch("/relay/{relay_id}")
async def update_relay(relay_id: str, patch: RelayPatch, store: RelayStore = Depends(get_relay_store)):
    packet = await store.update(relay_id, patch)
    if packet is None:
        return _not_found()
    return packet.to_wire()


@router.delete("/relay/{relay_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_relay(relay_id: str, store: RelayStore = Depends(get_relay_store)):
    if await store.delete(relay_id) is None:
        return _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/seed")
async def seed(store: RelayStore = Depends(get_relay_store)):
    count = await store.seed()
    return {"ok": True, "count": count}


@router.websocket("/ws")
async def relay_feed(websocket: WebSocket):
    store: RelayStore = websocket.app.state.relay_store
    await websocket.accept()
    await store.subscribe(websocket)
    try:
        while True:
            # Inbound frames are ignored; receiving keeps the disconnect visible.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        store.broadcaster.unsubscribe(websocket)
