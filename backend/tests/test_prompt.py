from citypulse.agui.events import EventEncoder, RunStarted, TextMessageContent
from citypulse.agui.models import ContextItem, Message, RunAgentInput
from citypulse.agui.prompt import append_context, build_body_from_messages


def msgs(*pairs):
    return [Message(role=role, content=content) for role, content in pairs]


def test_single_user_message_is_used_verbatim():
    prompt = build_body_from_messages(msgs(("user", "  What's up in SoDo?  ")))
    assert prompt.body == "What's up in SoDo?"
    assert prompt.system_prompt is None


def test_tool_only_messages():
    prompt = build_body_from_messages(msgs(("tool", '{"shown": true}')))
    assert prompt.body == 'Tool result: {"shown": true}'


def test_transcript_and_system_prompt():
    prompt = build_body_from_messages(
        msgs(
            ("system", "Be brief."),
            ("user", "Status of Ballard?"),
            ("assistant", "Elevated."),
            ("user", "Why?"),
        )
    )
    assert prompt.body == "User: Status of Ballard?\nAssistant: Elevated.\nUser: Why?"
    assert prompt.system_prompt == "Be brief."


def test_non_string_content_is_ignored():
    prompt = build_body_from_messages([Message(role="user", content=[{"type": "image"}])])
    assert prompt.body == ""


def test_append_context():
    body = append_context(
        "Hi",
        [
            ContextItem(description="Selected neighborhood", value="Ballard"),
            ContextItem(value="orphan"),
            ContextItem(),
        ],
    )
    assert body == "Hi\n\n--- App context ---\n[Selected neighborhood]: Ballard\n[context]: orphan"
    assert append_context("Hi", []) == "Hi"


def test_run_agent_input_accepts_camel_case():
    run_input = RunAgentInput.model_validate(
        {
            "threadId": "t1",
            "runId": "r1",
            "messages": [{"id": "m1", "role": "tool", "content": "ok", "toolCallId": "c1"}],
            "tools": [{"name": "showMap"}],
            "forwardedProps": {},
        }
    )
    assert run_input.thread_id == "t1"
    assert run_input.messages[0].tool_call_id == "c1"
    assert run_input.has_prompt_role()
    assert not RunAgentInput(messages=msgs(("assistant", "hi"))).has_prompt_role()


def test_event_encoder_uses_camel_case_and_omits_none():
    encoder = EventEncoder()
    assert encoder.get_content_type() == "text/event-stream"
    assert encoder.encode(RunStarted(thread_id="t1", run_id="r1")) == (
        'data: {"type":"RUN_STARTED","threadId":"t1","runId":"r1"}\n\n'
    )
    frame = encoder.encode(TextMessageContent(message_id="m1", delta="hi"))
    assert '"messageId":"m1"' in frame
    assert "runId" not in frame
