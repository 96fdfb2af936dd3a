from fastapi import APIRouter, Request

router = APIRouter(tags=["agui"])


@router.api_route("/v1/agui", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def agui(request: Request):
    """AG-UI run endpoint. Non-POST methods get 405 from the bridge itself."""
    return await request.app.state.agui_bridge.handle(request)
