"""Adapter for Claude's linear-thread export schema.

Claude exports already list each conversation's messages in order, in the
same shape the analytics consume, so the adapter only validates them.
"""

from __future__ import annotations

import logging
from typing import Any

from export_errors import InvalidSessionStructure
from export_model import Session

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("uuid", "created_at")


def parse_claude_conversations(raw: Any) -> list[Session]:
    """Validate a Claude ``conversations.json`` array and return it as sessions.

    Only the first conversation is checked for ``uuid``, ``created_at`` and
    a ``chat_messages`` list; the array is returned unchanged.

    Raises:
        InvalidSessionStructure: If *raw* is not a non-empty array or its
            first element lacks a required field.
    """
    if not isinstance(raw, list):
        raise InvalidSessionStructure("Invalid conversations.json format: expected an array")

    if not raw:
        raise InvalidSessionStructure("No conversations found in the export")

    first = raw[0]
    if (
        not isinstance(first, dict)
        or not all(first.get(field) for field in REQUIRED_FIELDS)
        or not isinstance(first.get("chat_messages"), list)
    ):
        raise InvalidSessionStructure("Invalid conversation structure in conversations.json")

    logger.debug("Parsed %d Claude conversations", len(raw))
    return raw
