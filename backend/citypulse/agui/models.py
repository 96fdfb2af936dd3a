"""Request body schema for POST /v1/agui (the AG-UI RunAgentInput shape)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _AguiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Message(_AguiModel):
    id: str | None = None
    role: str | None = None
    content: Any = None
    tool_call_id: str | None = None

    def text(self) -> str:
        return self.content if isinstance(self.content, str) else ""


class ToolDefinition(_AguiModel):
    name: str
    description: str = ""
    parameters: dict[str, Any] | None = None


class ContextItem(_AguiModel):
    description: str | None = None
    value: Any = None


class RunAgentInput(_AguiModel):
    thread_id: str | None = None
    run_id: str | None = None
    messages: list[Message] = Field(default_factory=list)
    tools: list[ToolDefinition] = Field(default_factory=list)
    context: list[ContextItem] = Field(default_factory=list)
    state: Any = None
    forwarded_props: Any = None

    def has_prompt_role(self) -> bool:
        return any(m.role in ("user", "tool") for m in self.messages)
