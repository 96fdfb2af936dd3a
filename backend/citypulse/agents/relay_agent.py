"""
City Pulse assistant graph and the AG-UI agent runtime that drives it.

    START → agent → (should_continue) → END
              ↑            ↓ tool_calls
              └──── tools ─┘ (after_tools: END once a client tool is called)

agent: LLM with server + client tools bound, produces text or tool_calls
tools: runs server tools, echoes client tools, fires the AG-UI tool hooks
"""

import asyncio
from functools import lru_cache
from typing import Callable

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.graph import END, START, StateGraph

from citypulse.agents.nodes import after_tools, agent_node, message_text, should_continue, tools_node
from citypulse.agents.tools import SERVER_TOOLS
from citypulse.agui.client_tools import client_tool_factory
from citypulse.agui.runtime import InboundContext, ReplyDispatcher
from citypulse.agui.session import SessionToolStore, default_store
from citypulse.core.graph_state import AgentState
from citypulse.core.llm import get_chat_model
from citypulse.core.logging import get_logger

log = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are the City Pulse assistant for Seattle neighborhood operators. "
    "Relay packets describe live incidents, traffic, weather and events. "
    "Use the tools to look up active relays and neighborhood status before answering, "
    "and keep answers short and actionable."
)

RECURSION_LIMIT = 25


@lru_cache(maxsize=1)
def build_agent_graph():
    """
    Compile and return the agent graph. No checkpointer: each request carries
    its own transcript. The compiled graph is stateless and reused per process.
    """
    workflow = StateGraph(AgentState)

    # Nodes
    workflow.add_node("agent", agent_node)
    workflow.add_node("tools", tools_node)

    # Edges
    workflow.add_edge(START, "agent")
    workflow.add_conditional_edges(
        "agent",
        should_continue,
        {"tools": "tools", "__end__": END},
    )
    workflow.add_conditional_edges(
        "tools",
        after_tools,
        {"agent": "agent", "__end__": END},
    )

    return workflow.compile()


class LangGraphAgentRuntime:
    """AgentRuntime backed by the LangGraph tool-calling loop."""

    def __init__(
        self,
        store: SessionToolStore | None = None,
        model_factory: Callable[[], BaseChatModel] = get_chat_model,
        tools: list | None = None,
    ) -> None:
        self.store = store if store is not None else default_store
        self.model_factory = model_factory
        self.tools = list(SERVER_TOOLS if tools is None else tools)

    async def dispatch(
        self,
        ctx: InboundContext,
        dispatcher: ReplyDispatcher,
        cancel_event: asyncio.Event,
    ) -> None:
        client_tools = client_tool_factory(self.store, ctx.session_key)
        model = self.model_factory().bind_tools(
            [*self.tools, *[t.to_openai_tool() for t in client_tools]]
        )

        system = SYSTEM_PROMPT
        if ctx.system_prompt:
            system = f"{SYSTEM_PROMPT}\n\n{ctx.system_prompt}"

        config = {
            "configurable": {
                "model": model,
                "store": self.store,
                "server_tools": {t.name: t for t in self.tools},
                "client_tools": {t.name.lower(): t for t in client_tools},
            },
            "recursion_limit": RECURSION_LIMIT,
        }
        state = {
            "messages": [SystemMessage(content=system), HumanMessage(content=ctx.body)],
            "session_key": ctx.session_key,
            "client_tool_called": False,
        }

        final_text = ""
        async for update in build_agent_graph().astream(state, config=config, stream_mode="updates"):
            if cancel_event.is_set():
                log.info("agent_run_cancelled", session_key=ctx.session_key)
                return
            agent_update = update.get("agent")
            if not agent_update:
                continue
            response = agent_update["messages"][-1]
            text = message_text(response)
            if getattr(response, "tool_calls", None):
                if text.strip():
                    dispatcher.send_block_reply(text)
            else:
                final_text = text

        if cancel_event.is_set():
            return
        log.info("agent_run_complete", session_key=ctx.session_key, run_id=ctx.run_id)
        dispatcher.send_final_reply(final_text)
