from typing import Annotated, TypedDict
from langgraph.graph.message import add_messages


class AgentState(TypedDict):
    """Shared state passed between all LangGraph nodes."""
    messages:           Annotated[list, add_messages]  # full message history (auto-appended)
    session_key:        str   # agui:<threadId>, keys the session tool store
    client_tool_called: bool  # set by tools node; ends the run so the client can execute it
