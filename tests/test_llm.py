"""Tests for wire conversion and the plain-mode chat model."""

import json
from unittest.mock import MagicMock

from clmi.llm import ChatModel, from_wire, parse_arguments, to_wire
from clmi.models import ContentSegment, Message, Role, Segments, ToolCall


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_mock_client(content: str, total_tokens: int | None = 120):
    """Create a mock chat-completions client returning one preset reply."""
    client = MagicMock()

    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].message.tool_calls = None
    if total_tokens is None:
        response.usage = None
    else:
        response.usage.prompt_tokens = total_tokens - 10
        response.usage.completion_tokens = 10
        response.usage.total_tokens = total_tokens

    client.chat.completions.create = MagicMock(return_value=response)
    return client


# ---------------------------------------------------------------------------
# to_wire
# ---------------------------------------------------------------------------

class TestToWire:
    def test_roles(self):
        assert to_wire(Message.system("s")) == {"role": "system", "content": "s"}
        assert to_wire(Message.human("h")) == {"role": "user", "content": "h"}
        assert to_wire(Message.assistant("a")) == {"role": "assistant", "content": "a"}

    def test_segments(self):
        msg = Message(Role.HUMAN, Segments((ContentSegment("text", "see"), ContentSegment("image_url", {"url": "u"}))))
        assert to_wire(msg)["content"] == [
            {"type": "text", "text": "see"},
            {"type": "image_url", "image_url": {"url": "u"}},
        ]

    def test_tool_calls_and_results(self):
        call = ToolCall(id="c1", name="calculator", arguments={"expression": "2*3"})
        wire = to_wire(Message.assistant("", tool_calls=[call]))
        assert wire["tool_calls"][0]["id"] == "c1"
        assert wire["tool_calls"][0]["function"]["name"] == "calculator"
        assert json.loads(wire["tool_calls"][0]["function"]["arguments"]) == {"expression": "2*3"}

        result = to_wire(Message.tool_result("c1", "6", tool_name="calculator"))
        assert result == {"role": "tool", "content": "6", "tool_call_id": "c1"}


# ---------------------------------------------------------------------------
# from_wire / parse_arguments
# ---------------------------------------------------------------------------

class TestFromWire:
    def test_plain_reply_with_usage(self):
        raw = MagicMock(content="hi there", tool_calls=None)
        usage = MagicMock(total_tokens=77)
        msg = from_wire(raw, usage)
        assert msg.role is Role.ASSISTANT
        assert msg.content.text == "hi there"
        assert msg.reported_token_usage == 77

    def test_none_content_becomes_empty(self):
        msg = from_wire(MagicMock(content=None, tool_calls=None))
        assert msg.content.text == ""
        assert msg.reported_token_usage is None

    def test_malformed_arguments(self):
        assert parse_arguments("{oops") == {}
        assert parse_arguments("") == {}
        assert parse_arguments('{"a": 1}') == {"a": 1}


# ---------------------------------------------------------------------------
# ChatModel
# ---------------------------------------------------------------------------

class TestChatModel:
    def test_invoke_sends_wire_messages(self):
        client = _make_mock_client("Hello!")
        model = ChatModel(client, "gpt-4o-mini", temperature=0)

        reply = model.invoke([Message.system("S"), Message.human("hi")])

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0
        assert kwargs["messages"] == [
            {"role": "system", "content": "S"},
            {"role": "user", "content": "hi"},
        ]
        assert reply.content.text == "Hello!"
        assert reply.reported_token_usage == 120

    def test_invoke_without_usage(self):
        reply = ChatModel(_make_mock_client("ok", total_tokens=None), "m").invoke([Message.human("hi")])
        assert reply.reported_token_usage is None
