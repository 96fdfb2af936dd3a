from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

# Must come after load_dotenv so env vars are available
from citypulse.agents.relay_agent import LangGraphAgentRuntime  # noqa: E402
from citypulse.agui.handler import AguiBridge                   # noqa: E402
from citypulse.agui.pairing import PairingStore                 # noqa: E402
from citypulse.agui.runtime import AgentRuntime                 # noqa: E402
from citypulse.agui.session import SessionToolStore             # noqa: E402
from citypulse.api import admin, agui, dashboard, health, relay  # noqa: E402
from citypulse.core.config import Settings, get_settings        # noqa: E402
from citypulse.core.logging import configure_logging, get_logger  # noqa: E402
from citypulse.relay.store import RelayStore                    # noqa: E402

configure_logging()
log = get_logger(__name__)

VERSION = "0.1.0"


def create_app(
    settings: Settings | None = None,
    *,
    runtime: AgentRuntime | None = None,
    pairing: PairingStore | None = None,
    session_store: SessionToolStore | None = None,
) -> FastAPI:
    """
    Build the API: relay service, dashboard, AG-UI bridge and pairing admin.
    Tests pass their own settings, runtime and stores.
    """
    settings = settings or get_settings()
    session_store = session_store if session_store is not None else SessionToolStore()
    pairing = pairing or PairingStore(
        settings.pairing_store_path or None,
        max_pending=settings.pairing_max_pending,
        ttl_seconds=settings.pairing_ttl_seconds,
    )
    runtime = runtime or LangGraphAgentRuntime(store=session_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            "startup",
            version=VERSION,
            environment=settings.environment,
            gateway_configured=bool(settings.gateway_secret),
        )
        yield
        log.info("shutdown")

    app = FastAPI(
        title="City Pulse",
        description="Relay service, neighborhood dashboard and AG-UI agent bridge",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.relay_store = RelayStore()
    app.state.pairing = pairing
    app.state.session_store = session_store
    app.state.gateway_secret = settings.gateway_secret
    app.state.agui_bridge = AguiBridge(
        runtime,
        pairing=pairing,
        gateway_secret=settings.gateway_secret,
        store=session_store,
        max_body_bytes=settings.agui_max_body_bytes,
    )

    app.include_router(health.router)
    app.include_router(relay.router)
    app.include_router(dashboard.router)
    app.include_router(agui.router)
    app.include_router(admin.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run("citypulse.main:app", host=settings.relay_host, port=settings.relay_port, reload=True)
