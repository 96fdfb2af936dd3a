"""Flatten AG-UI messages + context into the single prompt body the agent receives."""

from dataclasses import dataclass

from citypulse.agui.models import ContextItem, Message


@dataclass
class PromptBody:
    body: str
    system_prompt: str | None = None


def build_body_from_messages(messages: list[Message]) -> PromptBody:
    """
    One user message → its text verbatim.
    Only tool results (a client resuming after a client tool) → "Tool result: <last>".
    Anything else → a "User: / Assistant: / Tool result:" transcript.
    System messages never enter the body; they become the system prompt.
    """
    system_parts: list[str] = []
    parts: list[str] = []
    last_user = ""
    last_tool = ""

    for msg in messages:
        role = (msg.role or "").strip()
        content = msg.text().strip()
        if not role:
            continue
        if role == "system":
            if content:
                system_parts.append(content)
            continue
        if role == "user":
            last_user = content
            if content:
                parts.append(f"User: {content}")
        elif role == "assistant":
            if content:
                parts.append(f"Assistant: {content}")
        elif role == "tool":
            last_tool = content
            if content:
                parts.append(f"Tool result: {content}")

    user_count = sum(1 for m in messages if m.role == "user")
    tool_count = sum(1 for m in messages if m.role == "tool")
    if user_count == 1 and len(parts) == 1:
        body = last_user
    elif user_count == 0 and tool_count > 0 and len(parts) == tool_count:
        body = f"Tool result: {last_tool}"
    else:
        body = "\n".join(parts)

    return PromptBody(
        body=body,
        system_prompt="\n\n".join(system_parts) if system_parts else None,
    )


def append_context(body: str, context: list[ContextItem]) -> str:
    """Append readable app state (`[description]: value` lines) below the prompt."""
    lines = [
        f"[{item.description or 'context'}]: {'' if item.value is None else item.value}"
        for item in context
        if item.description or item.value
    ]
    if not lines:
        return body
    return f"{body}\n\n--- App context ---\n" + "\n".join(lines)
