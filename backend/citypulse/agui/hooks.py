"""
Tool lifecycle hooks. The agent runtime calls these around every tool call so
the client sees TOOL_CALL_* events on the open run stream.

Client tools (declared by the frontend) end immediately: the client executes
them and resumes with a tool message in a follow-up request. Server tools stay
open until `after_tool_call` reports the result.
"""

import json
import uuid
from typing import Any

from citypulse.agui.events import ToolCallArgs, ToolCallEnd, ToolCallResult, ToolCallStart
from citypulse.agui.session import SessionToolStore
from citypulse.core.logging import get_logger

log = get_logger(__name__)


def before_tool_call(
    store: SessionToolStore,
    session_key: str,
    tool_name: str,
    params: dict[str, Any] | None,
) -> str | None:
    """Emit TOOL_CALL_START (+ ARGS). Returns the tool call id, or None when no stream is attached."""
    writer = store.get_writer(session_key)
    if writer is None:
        return None

    tool_call_id = f"tool-{uuid.uuid4()}"
    writer(ToolCallStart(tool_call_id=tool_call_id, tool_call_name=tool_name))
    if params:
        writer(ToolCallArgs(tool_call_id=tool_call_id, delta=json.dumps(params)))
    store.mark_tool_fired(session_key)

    if store.is_client_tool(session_key, tool_name):
        writer(ToolCallEnd(tool_call_id=tool_call_id))
        store.mark_client_tool_called(session_key)
    else:
        store.push_tool_call_id(session_key, tool_call_id)

    log.debug("tool_call_started", session_key=session_key, tool=tool_name, tool_call_id=tool_call_id)
    return tool_call_id


def after_tool_call(store: SessionToolStore, session_key: str) -> None:
    writer = store.get_writer(session_key)
    tool_call_id = store.pop_tool_call_id(session_key)
    message_id = store.get_message_id(session_key)
    if writer is None or tool_call_id is None or message_id is None:
        return
    writer(ToolCallResult(tool_call_id=tool_call_id, message_id=message_id, content=""))
    writer(ToolCallEnd(tool_call_id=tool_call_id))
