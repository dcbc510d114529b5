"""Agent mode: streaming chat completions with a tool-calling loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .errors import TurnError
from .llm import parse_arguments, to_wire
from .models import Message, ToolCall
from .tools import ToolRegistry

logger = logging.getLogger("clmi.agent")

TokenSink = Callable[[str], None]


@dataclass
class _PendingCall:
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass
class _StreamedReply:
    text: str = ""
    calls: dict[int, _PendingCall] = field(default_factory=dict)
    total_tokens: int | None = None

    def to_message(self) -> Message:
        tool_calls = [
            ToolCall(id=c.id, name=c.name, arguments=parse_arguments(c.arguments))
            for _, c in sorted(self.calls.items())
        ]
        return Message.assistant(self.text, tool_calls=tool_calls, reported_token_usage=self.total_tokens)


class ToolAgent:
    """
    Runs one agent turn against a tool-enabled model.

    The system prompt is fixed at construction; the session rebuilds the
    agent whenever a new bot definition is loaded. ``run`` streams text
    through the token sink in arrival order and returns the input history
    extended with every message produced during the turn: assistant tool
    calls, their tool results, and the final assistant reply.
    """

    def __init__(
        self,
        client: Any,
        model: str,
        system_prompt: str,
        tools: ToolRegistry,
        temperature: float = 0.0,
        max_rounds: int = 8,
        include_usage: bool = True,
    ):
        self.client = client
        self.model = model
        self.system_prompt = system_prompt
        self.tools = tools
        self.temperature = temperature
        self.max_rounds = max_rounds
        self.include_usage = include_usage

    def run(self, history: Sequence[Message], on_token: TokenSink | None = None) -> list[Message]:
        messages = list(history)
        system = Message.system(self.system_prompt)

        for round_no in range(1, self.max_rounds + 1):
            reply = self._stream([system, *messages], on_token)
            message = reply.to_message()
            messages.append(message)

            if not message.has_tool_calls:
                return messages

            logger.info(
                "Round %d: model requested %s",
                round_no, ", ".join(c.name for c in message.tool_calls),
            )
            for call in message.tool_calls:
                result = self.tools.execute(call.name, call.arguments)
                logger.debug("Tool %s -> %s", call.name, result[:200])
                messages.append(Message.tool_result(call.id, result, tool_name=call.name))

        raise TurnError(f"agent did not finish within {self.max_rounds} tool rounds")

    def _stream(self, messages: Sequence[Message], on_token: TokenSink | None) -> _StreamedReply:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [to_wire(m) for m in messages],
            "temperature": self.temperature,
            "stream": True,
        }
        tools = self.tools.openai_tools()
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        if self.include_usage:
            kwargs["stream_options"] = {"include_usage": True}

        reply = _StreamedReply()
        for chunk in self.client.chat.completions.create(**kwargs):
            usage = getattr(chunk, "usage", None)
            if usage:
                reply.total_tokens = usage.total_tokens
            if not chunk.choices:
                continue

            delta = chunk.choices[0].delta
            if delta.content:
                reply.text += delta.content
                if on_token:
                    on_token(delta.content)

            for tc in delta.tool_calls or []:
                pending = reply.calls.setdefault(tc.index, _PendingCall())
                if tc.id:
                    pending.id = tc.id
                if tc.function is not None:
                    pending.name += tc.function.name or ""
                    pending.arguments += tc.function.arguments or ""

        return reply
