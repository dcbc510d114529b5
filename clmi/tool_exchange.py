"""Ordering and pairing of assistant tool calls with their results."""

from __future__ import annotations

import logging
from typing import Sequence

from .errors import ToolExchangeError
from .models import Conversation, Message, Role

logger = logging.getLogger("clmi.tool_exchange")


def new_messages(sent: Sequence[Message], returned: Sequence[Message]) -> Conversation:
    """Messages the agent produced beyond what it was sent."""
    if len(returned) < len(sent) or tuple(returned[:len(sent)]) != tuple(sent):
        raise ToolExchangeError(
            f"agent returned {len(returned)} messages that do not extend the {len(sent)} sent"
        )
    return tuple(returned[len(sent):])


def validate_pairing(messages: Sequence[Message]) -> None:
    """
    Check that each assistant tool call is answered, in call order, by a
    tool-result message before any further human or assistant message.
    """
    pending: list[str] = []

    for index, message in enumerate(messages):
        if message.role is Role.TOOL:
            ref = message.tool_result_ref
            if ref is None:
                raise ToolExchangeError(f"tool result at {index} has no call reference")
            if not pending:
                raise ToolExchangeError(
                    f"tool result at {index} answers {ref.tool_call_id!r} with no call pending"
                )
            if ref.tool_call_id != pending[0]:
                raise ToolExchangeError(
                    f"tool result at {index} answers {ref.tool_call_id!r}, expected {pending[0]!r}"
                )
            pending.pop(0)
            continue

        if pending:
            raise ToolExchangeError(
                f"{message.role.value} message at {index} interrupts pending tool calls {pending}"
            )

        if message.role is Role.ASSISTANT and message.has_tool_calls:
            pending = [call.id for call in message.tool_calls]

    if pending:
        raise ToolExchangeError(f"tool calls {pending} have no results")


def fold(
    conversation: Sequence[Message],
    sent: Sequence[Message],
    returned: Sequence[Message],
) -> Conversation:
    """Append this turn's agent output to the conversation after validating it."""
    produced = new_messages(sent, returned)
    validate_pairing(produced)
    logger.debug("Folding %d agent messages into history", len(produced))
    return tuple(conversation) + produced
