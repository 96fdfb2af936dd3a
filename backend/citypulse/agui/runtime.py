"""Seam between the HTTP bridge and whatever produces the agent's replies."""

import asyncio
from dataclasses import dataclass
from typing import Protocol


@dataclass
class InboundContext:
    session_key: str
    thread_id: str
    run_id: str
    device_id: str
    body: str
    system_prompt: str | None = None


class ReplyDispatcher(Protocol):
    def send_tool_result(self, text: str) -> bool: ...

    def send_block_reply(self, text: str) -> bool: ...

    def send_final_reply(self, text: str) -> bool: ...


class AgentRuntime(Protocol):
    async def dispatch(
        self,
        ctx: InboundContext,
        dispatcher: ReplyDispatcher,
        cancel_event: asyncio.Event,
    ) -> None: ...
