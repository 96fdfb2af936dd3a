"""
LangGraph node implementations.

Graph topology:

    START → agent → (should_continue) → END
              ↑            ↓ tool_calls present
              └── tools ── (after_tools) → END when a client tool was called

agent_node:
    - LLM bound with server tools + the request's client tools
    - Returns AIMessage (text or tool_calls)

tools_node:
    - Fires the AG-UI tool hooks around every call
    - Server tools run here; client tools are not run, their arguments are
      echoed back and the run ends so the client can execute them

Per-request objects (bound model, session store, tool tables) arrive through
config["configurable"]; the compiled graph itself is shared.
"""

from langchain_core.messages import AIMessage, ToolMessage
from langchain_core.runnables import RunnableConfig

from citypulse.agui.hooks import after_tool_call, before_tool_call
from citypulse.core.graph_state import AgentState
from citypulse.core.logging import get_logger

log = get_logger(__name__)


def message_text(message) -> str:
    """Plain text of a chat message; list-style content keeps only its text parts."""
    content = getattr(message, "content", "")
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


# ── agent_node ────────────────────────────────────────────────────────────────

async def agent_node(state: AgentState, config: RunnableConfig) -> dict:
    llm = config["configurable"]["model"]
    response = await llm.ainvoke(state["messages"])

    log.debug(
        "agent_response",
        session_key=state.get("session_key"),
        has_tool_calls=bool(getattr(response, "tool_calls", None)),
        content_length=len(message_text(response)),
    )

    return {"messages": [response]}


# ── tools_node ────────────────────────────────────────────────────────────────

async def tools_node(state: AgentState, config: RunnableConfig) -> dict:
    configurable = config["configurable"]
    store = configurable["store"]
    server_tools = configurable["server_tools"]
    client_tools = configurable["client_tools"]
    session_key = state["session_key"]

    last: AIMessage = state["messages"][-1]
    results: list[ToolMessage] = []
    client_tool_called = False

    for call in last.tool_calls:
        name, args, call_id = call["name"], call.get("args") or {}, call["id"]
        before_tool_call(store, session_key, name, args)

        client_tool = client_tools.get(name.lower())
        if client_tool is not None:
            client_tool_called = True
            results.append(ToolMessage(content=client_tool.execute(args), tool_call_id=call_id, name=name))
            continue

        server_tool = server_tools.get(name)
        if server_tool is None:
            content = f"Error: unknown tool {name}"
        else:
            try:
                content = await server_tool.ainvoke(args)
            except Exception as exc:
                # Surface the failure to the model the way ToolNode does
                log.warning("tool_failed", session_key=session_key, tool=name, error=str(exc))
                content = f"Error: {exc}"
        after_tool_call(store, session_key)
        results.append(ToolMessage(content=str(content), tool_call_id=call_id, name=name))

    return {"messages": results, "client_tool_called": client_tool_called}


# ── Routers (conditional edge functions) ──────────────────────────────────────

def should_continue(state: AgentState) -> str:
    """
    Inspect the last agent message.
    Returns "tools" to route to the tool executor,
    or "__end__" to finish the graph.
    """
    last = state["messages"][-1]
    if hasattr(last, "tool_calls") and last.tool_calls:
        return "tools"
    return "__end__"


def after_tools(state: AgentState) -> str:
    if state.get("client_tool_called"):
        return "__end__"
    return "agent"
