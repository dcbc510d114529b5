"""Keep-most-recent history trimming under a token budget."""

from __future__ import annotations

import logging
from typing import Sequence

from .models import Conversation, Message, Role
from .tokens import measure

logger = logging.getLogger("clmi.trimmer")

DEFAULT_MAX_TOKENS = 1000


def _longest_fitting_suffix(messages: Sequence[Message], max_tokens: int) -> int:
    """Start index of the longest suffix whose measured cost fits."""
    start = len(messages)
    # measure() never shrinks as older messages are prepended, so the first
    # suffix that overflows ends the search.
    for i in range(len(messages) - 1, -1, -1):
        if measure(messages[i:]) > max_tokens:
            break
        start = i
    return start


def trim(messages: Sequence[Message], max_tokens: int = DEFAULT_MAX_TOKENS) -> Conversation:
    """
    Drop the oldest messages until the history fits ``max_tokens``.

    The kept window is a suffix that starts on a human message. When nothing
    fits, the most recent message is kept on its own rather than returning
    an empty history. The input is never modified.
    """
    if max_tokens < 0:
        raise ValueError(f"max_tokens must be >= 0, got {max_tokens}")

    messages = tuple(messages)
    if not messages:
        return ()

    start = _longest_fitting_suffix(messages, max_tokens)
    while start < len(messages) and messages[start].role is not Role.HUMAN:
        start += 1

    kept = messages[start:]
    if not kept:
        kept = messages[-1:]

    logger.info(
        "Trimmed history from %d to %d messages (budget %d tokens)",
        len(messages), len(kept), max_tokens,
    )
    return kept
