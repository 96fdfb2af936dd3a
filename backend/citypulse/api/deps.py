"""
FastAPI dependencies.

Usage:
    @router.get("/api/admin/pairing")
    async def list_pending(pairing: PairingStore = Depends(get_pairing_store),
                           _op: None = Depends(require_operator)):
        ...
"""

import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from citypulse.agui.pairing import PairingStore
from citypulse.core.config import get_settings
from citypulse.relay.store import RelayStore

_bearer = HTTPBearer(auto_error=False)


def get_relay_store(request: Request) -> RelayStore:
    return request.app.state.relay_store


def get_pairing_store(request: Request) -> PairingStore:
    return request.app.state.pairing


async def require_operator(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> None:
    """
    Admin routes take the gateway secret itself as the bearer token.
    Raises 503 when no secret is configured, 401 otherwise on mismatch.
    """
    secret = getattr(request.app.state, "gateway_secret", None) or get_settings().gateway_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Gateway secret not configured",
        )
    if credentials is None or not hmac.compare_digest(credentials.credentials.encode(), secret.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid operator token",
            headers={"WWW-Authenticate": "Bearer"},
        )
