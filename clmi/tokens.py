"""Approximate token accounting for messages and conversations."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from .content import normalize
from .models import Content, Message, Role

logger = logging.getLogger("clmi.tokens")


def estimate(content: Content) -> int:
    """Whitespace word count of the normalized content."""
    return len(normalize(content).split())


def reported_usage(message: Message) -> int | None:
    """
    Authoritative usage carried by the message, or None.

    Accepts ints, floats and numeric strings. Anything else present on the
    message is logged and ignored so the caller falls back to the estimate.
    """
    value: Any = message.reported_token_usage
    if value is None:
        if message.role is Role.ASSISTANT:
            logger.debug("Missing token count on assistant message")
        return None

    if isinstance(value, bool):
        number = math.nan
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = math.nan

    if math.isnan(number) or math.isinf(number):
        logger.warning("Invalid token count in response metadata: %r", value)
        return None
    return int(number)


def measure(messages: Iterable[Message]) -> int:
    """
    Token cost of a message sequence.

    Not a plain sum: reported usage is a running total for the exchange so
    far, so it raises the running count to at least that figure instead of
    adding to it. Messages without usage add their estimate.
    """
    total = 0
    count = 0
    for message in messages:
        count += 1
        usage = reported_usage(message)
        if usage is not None:
            total = max(total, usage)
        else:
            total += estimate(message.content)

    logger.debug("%d messages contained %d tokens.", count, total)
    return total
