"""Completion client: wire-format conversion and plain (tool-free) chat calls."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import openai
from groq import Groq

from .config import Settings
from .models import Message, PlainText, Role, Segments, ToolCall

logger = logging.getLogger("clmi.llm")

_WIRE_ROLES = {
    Role.SYSTEM: "system",
    Role.HUMAN: "user",
    Role.ASSISTANT: "assistant",
    Role.TOOL: "tool",
}


def make_client(settings: Settings) -> Any:
    """Chat-completions client for the configured provider."""
    if settings.provider == "groq" and not settings.base_url:
        return Groq(api_key=settings.api_key)
    return openai.OpenAI(api_key=settings.api_key, base_url=settings.base_url)


def _wire_content(message: Message) -> str | list[dict]:
    content = message.content
    if isinstance(content, PlainText):
        return content.text
    if isinstance(content, Segments):
        return [{"type": s.type, s.type: s.value} for s in content.items]
    raise TypeError(f"not message content: {type(content).__name__}")


def to_wire(message: Message) -> dict[str, Any]:
    """Convert a Message to the chat-completions dict format."""
    wire: dict[str, Any] = {
        "role": _WIRE_ROLES[message.role],
        "content": _wire_content(message),
    }
    if message.role is Role.ASSISTANT and message.has_tool_calls:
        wire["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for call in message.tool_calls
        ]
    if message.role is Role.TOOL and message.tool_result_ref is not None:
        wire["tool_call_id"] = message.tool_result_ref.tool_call_id
    return wire


def parse_arguments(raw: str | None) -> dict[str, Any]:
    """Decode tool-call arguments; malformed JSON becomes an empty dict."""
    if not raw:
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Malformed tool arguments: %s", raw[:200])
        return {}
    return args if isinstance(args, dict) else {"value": args}


def from_wire(raw_message: Any, usage: Any = None) -> Message:
    """Build an assistant Message from a chat-completions response message."""
    content = raw_message.content
    if isinstance(content, list):
        content = Segments.from_parts(content)
    tool_calls = [
        ToolCall(id=tc.id, name=tc.function.name, arguments=parse_arguments(tc.function.arguments))
        for tc in (getattr(raw_message, "tool_calls", None) or [])
    ]
    return Message.assistant(
        content if content is not None else "",
        tool_calls=tool_calls,
        reported_token_usage=getattr(usage, "total_tokens", None) if usage else None,
    )


class ChatModel:
    """Plain-mode completion collaborator: one request, one assistant reply."""

    def __init__(self, client: Any, model: str, temperature: float = 0.0):
        self.client = client
        self.model = model
        self.temperature = temperature

    def invoke(self, messages: Sequence[Message]) -> Message:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[to_wire(m) for m in messages],
            temperature=self.temperature,
        )
        if response.usage:
            logger.debug(
                "Completion tokens: prompt=%s, completion=%s, total=%s",
                response.usage.prompt_tokens,
                response.usage.completion_tokens,
                response.usage.total_tokens,
            )
        return from_wire(response.choices[0].message, response.usage)
