import json
import uuid

import pytest
from fastapi.testclient import TestClient

from citypulse.agui.pairing import PairingStore
from citypulse.agui.session import SessionToolStore
from citypulse.agui.tokens import create_device_token
from citypulse.core.config import Settings
from citypulse.main import create_app

GATEWAY_SECRET = "test-gateway-secret"


class ScriptedRuntime:
    """AgentRuntime whose dispatch is a test-supplied coroutine function."""

    def __init__(self, script=None):
        self.script = script
        self.contexts = []

    async def dispatch(self, ctx, dispatcher, cancel_event):
        self.contexts.append(ctx)
        if self.script is not None:
            await self.script(ctx, dispatcher, cancel_event)


@pytest.fixture
def settings():
    return Settings(
        gateway_secret=GATEWAY_SECRET,
        pairing_store_path="",
        environment="test",
        relay_base_url="http://relay.test",
    )


@pytest.fixture
def pairing():
    return PairingStore()


@pytest.fixture
def session_store():
    return SessionToolStore()


@pytest.fixture
def runtime():
    return ScriptedRuntime()


@pytest.fixture
def app(settings, pairing, session_store, runtime):
    return create_app(settings, runtime=runtime, pairing=pairing, session_store=session_store)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def device_token(pairing):
    """Bearer token for a device that is already on the allow-list."""
    device_id = str(uuid.uuid4())
    code = pairing.upsert_pairing_request(device_id)
    pairing.approve(code)
    return create_device_token(GATEWAY_SECRET, device_id)


def parse_sse(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]
