"""Reduce message content to a single display/measurement string."""

from __future__ import annotations

import json
import logging
from typing import Any

from .models import Content, PlainText, Segments, SUPPORTED_SEGMENT_TYPES

logger = logging.getLogger("clmi.content")


def _serialize(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def normalize(content: Content) -> str:
    """
    Flatten content to one string.

    Plain text is returned unchanged. For segments, unsupported types are
    dropped with a warning; a single survivor yields its value (serialized
    if structured), several survivors yield a JSON list of their values,
    and no survivors yield "".
    """
    if isinstance(content, PlainText):
        return content.text

    if not isinstance(content, Segments):
        raise TypeError(f"not message content: {type(content).__name__}")

    values = []
    for segment in content.items:
        if segment.type in SUPPORTED_SEGMENT_TYPES:
            values.append(segment.value)
        else:
            logger.warning("unsupported content type: %s", segment.type)

    if not values:
        return ""
    if len(values) == 1:
        value = values[0]
        return value if isinstance(value, str) else _serialize(value)
    return _serialize(values)
