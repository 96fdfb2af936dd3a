"""
Operator endpoints for device pairing. All routes take the gateway secret as
the bearer token.

    GET    /api/admin/pairing                  pending requests
    POST   /api/admin/pairing/{code}/approve   allow-list the device
    DELETE /api/admin/pairing/{code}           reject
    GET    /api/admin/devices                  approved devices
    DELETE /api/admin/devices/{device_id}      revoke
"""

from fastapi import APIRouter, Depends, HTTPException, status

from citypulse.agui.pairing import PairingStore
from citypulse.api.deps import get_pairing_store, require_operator
from citypulse.core.logging import get_logger

log = get_logger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_operator)])


@router.get("/pairing")
def list_pending(pairing: PairingStore = Depends(get_pairing_store)):
    return [
        {"deviceId": req.device_id, "code": req.code, "createdAt": req.created_at}
        for req in pairing.list_pending()
    ]


@router.post("/pairing/{code}/approve")
def approve(code: str, pairing: PairingStore = Depends(get_pairing_store)):
    device_id = pairing.approve(code)
    if device_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown or expired pairing code")
    return {"approved": True, "deviceId": device_id}


@router.delete("/pairing/{code}")
def reject(code: str, pairing: PairingStore = Depends(get_pairing_store)):
    device_id = pairing.reject(code)
    if device_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown or expired pairing code")
    return {"rejected": True, "deviceId": device_id}


@router.get("/devices")
def list_devices(pairing: PairingStore = Depends(get_pairing_store)):
    return {"devices": pairing.read_allow_from()}


@router.delete("/devices/{device_id}")
def revoke(device_id: str, pairing: PairingStore = Depends(get_pairing_store)):
    if not pairing.revoke(device_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")
    log.info("admin_device_revoked", device_id=device_id)
    return {"revoked": True, "deviceId": device_id}
