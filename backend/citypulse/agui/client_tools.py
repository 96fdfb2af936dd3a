"""Client-declared tools, surfaced to the model alongside the server tools."""

import json
from dataclasses import dataclass, field
from typing import Any

from citypulse.agui.session import SessionToolStore


def _empty_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass
class ClientTool:
    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=_empty_schema)

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def execute(self, args: dict[str, Any] | None) -> str:
        # The client runs the tool; the model only sees its own arguments echoed back.
        return json.dumps(args or {})


def client_tool_factory(store: SessionToolStore, session_key: str) -> list[ClientTool]:
    return [
        ClientTool(
            name=tool.name,
            description=tool.description or "",
            parameters=tool.parameters or _empty_schema(),
        )
        for tool in store.pop_tools(session_key)
    ]
