"""Canonical session model shared by both export adapters and the analytics.

Sessions and messages stay plain dicts so they serialise straight to JSON; the
``TypedDict`` classes below only document the shape.  The linear-thread
(Claude) schema already matches it, and the tree normaliser produces it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, NotRequired, TypedDict

EPOCH_ISO = datetime.fromtimestamp(0, tz=timezone.utc).isoformat()
UNNAMED_SESSION = "(unnamed)"


class Attachment(TypedDict):
    type: str
    count: int
    asset_pointers: NotRequired[list[str]]


class Message(TypedDict):
    uuid: str
    text: str
    sender: Literal["human", "assistant"]
    created_at: str
    attachments: NotRequired[list[Attachment]]


class Session(TypedDict):
    uuid: str
    name: str
    summary: str
    created_at: str
    updated_at: str
    chat_messages: list[Message]
    account: dict[str, str]


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into a local-timezone-aware datetime.

    Naive values are taken to be local time already.  A trailing ``Z`` is
    accepted.

    Args:
        value: Usually a string from ``created_at``/``updated_at``.

    Returns:
        The parsed datetime in the local timezone, or None when *value* is
        missing or unparseable.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value).astimezone()
    except (ValueError, OverflowError, OSError):
        return None


def session_messages(session: Any) -> list[dict]:
    """Return a session's message list, or ``[]`` when it is absent or malformed."""
    if not isinstance(session, dict):
        return []
    messages = session.get("chat_messages")
    return messages if isinstance(messages, list) else []


def message_text(message: Any) -> str:
    """Return a message's text, never None."""
    if not isinstance(message, dict):
        return ""
    text = message.get("text")
    return text if isinstance(text, str) else ""


def session_name(session: dict) -> str:
    return session.get("name") or UNNAMED_SESSION
