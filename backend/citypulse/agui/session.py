"""
Per-session request state shared by the HTTP handler, the tool hooks and the
agent runtime.

Everything is keyed by session key (`agui:<threadId>`) and held in process
memory. The handler clears a session when its run stream ends.
"""

from dataclasses import dataclass, field
from typing import Callable

from citypulse.agui.events import BaseEvent
from citypulse.agui.models import ToolDefinition

EventWriter = Callable[[BaseEvent], None]


@dataclass
class _WriterSlot:
    writer: EventWriter
    message_id: str


@dataclass
class SessionToolStore:
    _tools: dict[str, list[ToolDefinition]] = field(default_factory=dict)
    _writers: dict[str, _WriterSlot] = field(default_factory=dict)
    _pending_calls: dict[str, list[str]] = field(default_factory=dict)
    _client_tool_names: dict[str, set[str]] = field(default_factory=dict)
    _tool_fired: set[str] = field(default_factory=set)
    _client_tool_called: set[str] = field(default_factory=set)

    # ── client tool definitions ───────────────────────────────────────────────

    def stash_tools(self, session_key: str, tools: list[ToolDefinition]) -> None:
        self._tools[session_key] = list(tools)

    def pop_tools(self, session_key: str) -> list[ToolDefinition]:
        return self._tools.pop(session_key, [])

    def mark_client_tool_names(self, session_key: str, names: list[str]) -> None:
        self._client_tool_names[session_key] = {n.lower() for n in names}

    def is_client_tool(self, session_key: str, tool_name: str) -> bool:
        return tool_name.lower() in self._client_tool_names.get(session_key, set())

    def clear_client_tool_names(self, session_key: str) -> None:
        self._client_tool_names.pop(session_key, None)

    # ── event writer ──────────────────────────────────────────────────────────

    def set_writer(self, session_key: str, writer: EventWriter, message_id: str) -> None:
        self._writers[session_key] = _WriterSlot(writer, message_id)

    def get_writer(self, session_key: str) -> EventWriter | None:
        slot = self._writers.get(session_key)
        return slot.writer if slot else None

    def get_message_id(self, session_key: str) -> str | None:
        slot = self._writers.get(session_key)
        return slot.message_id if slot else None

    def set_message_id(self, session_key: str, message_id: str) -> None:
        slot = self._writers.get(session_key)
        if slot is not None:
            slot.message_id = message_id

    def clear_writer(self, session_key: str) -> None:
        self._writers.pop(session_key, None)

    # ── pending server tool calls ─────────────────────────────────────────────

    def push_tool_call_id(self, session_key: str, tool_call_id: str) -> None:
        self._pending_calls.setdefault(session_key, []).append(tool_call_id)

    def pop_tool_call_id(self, session_key: str) -> str | None:
        stack = self._pending_calls.get(session_key)
        if not stack:
            return None
        tool_call_id = stack.pop()
        if not stack:
            del self._pending_calls[session_key]
        return tool_call_id

    def pending_tool_calls(self, session_key: str) -> int:
        return len(self._pending_calls.get(session_key, []))

    # ── per-run flags ─────────────────────────────────────────────────────────

    def mark_tool_fired(self, session_key: str) -> None:
        self._tool_fired.add(session_key)

    def was_tool_fired(self, session_key: str) -> bool:
        return session_key in self._tool_fired

    def clear_tool_fired(self, session_key: str) -> None:
        self._tool_fired.discard(session_key)

    def mark_client_tool_called(self, session_key: str) -> None:
        self._client_tool_called.add(session_key)

    def was_client_tool_called(self, session_key: str) -> bool:
        return session_key in self._client_tool_called

    def clear_client_tool_called(self, session_key: str) -> None:
        self._client_tool_called.discard(session_key)

    def clear_session(self, session_key: str) -> None:
        self._tools.pop(session_key, None)
        self._pending_calls.pop(session_key, None)
        self.clear_writer(session_key)
        self.clear_client_tool_names(session_key)
        self.clear_tool_fired(session_key)
        self.clear_client_tool_called(session_key)


default_store = SessionToolStore()
