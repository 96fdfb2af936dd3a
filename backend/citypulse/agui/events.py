"""
AG-UI event models and the server-sent-event encoder.

Events serialize with camelCase keys and omit unset optionals, e.g.

    data: {"type":"RUN_STARTED","threadId":"t1","runId":"r1"}
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    RUN_STARTED = "RUN_STARTED"
    RUN_FINISHED = "RUN_FINISHED"
    RUN_ERROR = "RUN_ERROR"
    TEXT_MESSAGE_START = "TEXT_MESSAGE_START"
    TEXT_MESSAGE_CONTENT = "TEXT_MESSAGE_CONTENT"
    TEXT_MESSAGE_END = "TEXT_MESSAGE_END"
    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_CALL_ARGS = "TOOL_CALL_ARGS"
    TOOL_CALL_END = "TOOL_CALL_END"
    TOOL_CALL_RESULT = "TOOL_CALL_RESULT"


class BaseEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: EventType


class RunStarted(BaseEvent):
    type: EventType = EventType.RUN_STARTED
    thread_id: str
    run_id: str


class RunFinished(BaseEvent):
    type: EventType = EventType.RUN_FINISHED
    thread_id: str
    run_id: str


class RunError(BaseEvent):
    type: EventType = EventType.RUN_ERROR
    message: str
    code: str | None = None


class TextMessageStart(BaseEvent):
    type: EventType = EventType.TEXT_MESSAGE_START
    message_id: str
    run_id: str | None = None
    role: str = "assistant"


class TextMessageContent(BaseEvent):
    type: EventType = EventType.TEXT_MESSAGE_CONTENT
    message_id: str
    run_id: str | None = None
    delta: str


class TextMessageEnd(BaseEvent):
    type: EventType = EventType.TEXT_MESSAGE_END
    message_id: str
    run_id: str | None = None


class ToolCallStart(BaseEvent):
    type: EventType = EventType.TOOL_CALL_START
    tool_call_id: str
    tool_call_name: str


class ToolCallArgs(BaseEvent):
    type: EventType = EventType.TOOL_CALL_ARGS
    tool_call_id: str
    delta: str


class ToolCallEnd(BaseEvent):
    type: EventType = EventType.TOOL_CALL_END
    tool_call_id: str


class ToolCallResult(BaseEvent):
    type: EventType = EventType.TOOL_CALL_RESULT
    tool_call_id: str
    message_id: str
    content: str = ""


class EventEncoder:
    """Encodes events as SSE frames. Only text/event-stream is offered."""

    content_type = "text/event-stream"

    def __init__(self, accept: str | None = None) -> None:
        self.accept = accept or self.content_type

    def get_content_type(self) -> str:
        return self.content_type

    def encode(self, event: BaseEvent) -> str:
        return f"data: {event.model_dump_json(by_alias=True, exclude_none=True)}\n\n"
