"""Normalise ChatGPT's branching ``mapping`` tree into canonical sessions.

ChatGPT exports store each conversation as a dict of nodes keyed by id, with
parent pointers and a ``current_node`` marking the branch the user last saw.
Only that branch is kept.  Tool turns never surface on their own: any images
they produce are attached to the next visible assistant reply.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from export_errors import InvalidSessionStructure
from export_model import EPOCH_ISO, UNNAMED_SESSION, Attachment, Message, Session

logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT = "all"


class NodeRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    OTHER = "other"

    @classmethod
    def of(cls, message: dict) -> NodeRole:
        author = message.get("author")
        role = author.get("role") if isinstance(author, dict) else None
        try:
            return cls(role)
        except ValueError:
            return cls.OTHER


def _epoch(value: Any) -> float | None:
    """Coerce an export timestamp to epoch seconds, or None if unusable.

    Zero, NaN, infinities and non-numeric values all count as missing.
    """
    if isinstance(value, bool) or value is None:
        return None
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return None
    if not ts or not math.isfinite(ts):
        return None
    return ts


def _epoch_to_iso(value: Any) -> str | None:
    ts = _epoch(value)
    if ts is None:
        return None
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def _message_timestamp(message: dict | None) -> float | None:
    if not message:
        return None
    ts = _epoch(message.get("create_time"))
    return ts if ts is not None else _epoch(message.get("update_time"))


def _content_parts(content: Any) -> list[Any]:
    """Flatten the several content layouts ChatGPT uses into one part list.

    Content may be a plain string, an object with a ``parts`` array, an
    object standing for a single part, or an array mixing strings and
    objects that may themselves carry ``parts``.
    """
    if not content:
        return []
    if isinstance(content, str):
        return [content]
    if isinstance(content, list):
        parts: list[Any] = []
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("parts"), list):
                parts.extend(p for p in part["parts"] if p)
            elif part:
                parts.append(part)
        return parts
    if isinstance(content, dict):
        if isinstance(content.get("parts"), list):
            return [p for p in content["parts"] if p]
        return [content]
    return []


def extract_text(content: Any) -> str:
    """Join the non-blank text parts of *content* with newlines."""
    strings = []
    for part in _content_parts(content):
        if isinstance(part, dict):
            part = part.get("text")
        if isinstance(part, str) and part.strip():
            strings.append(part.strip())
    return "\n".join(strings)


def extract_tool_images(message: dict) -> list[Attachment]:
    """Return one image attachment for a tool message's asset pointers, if any."""
    pointers = [
        part["asset_pointer"]
        for part in _content_parts(message.get("content"))
        if isinstance(part, dict) and isinstance(part.get("asset_pointer"), str)
    ]
    if not pointers:
        return []
    return [
        {
            "type": "image",
            "count": len(pointers),
            "asset_pointers": [p for p in pointers if p],
        }
    ]


def walk_current_path(conversation: dict) -> list[dict]:
    """Return the nodes on the current branch, root first.

    Follows parent pointers back from ``current_node``, stopping at the root
    or at a node already visited.  When ``current_node`` is missing or
    unknown, every node with a message is returned ordered by timestamp.
    """
    mapping = conversation.get("mapping") or {}
    if not isinstance(mapping, dict):
        raise InvalidSessionStructure("Conversation mapping is not an object")

    current_id = conversation.get("current_node")
    if not current_id or current_id not in mapping:
        nodes = [
            node for node in mapping.values()
            if isinstance(node, dict) and isinstance(node.get("message"), dict)
        ]
        return sorted(nodes, key=lambda n: _message_timestamp(n["message"]) or 0)

    path: list[dict] = []
    visited: set[str] = set()
    cursor = current_id
    while cursor and cursor not in visited:
        node = mapping.get(cursor)
        if not isinstance(node, dict):
            break
        visited.add(cursor)
        path.append(node)
        cursor = node.get("parent")

    if cursor and cursor in visited:
        logger.debug("Cycle in conversation tree at node %s", cursor)

    path.reverse()
    return path


def _visible_entries(path: list[dict]) -> list[dict]:
    """Classify nodes on *path* into visible user/assistant entries.

    Each entry holds the walk index, role, source message, its own timestamp
    and the attachments it carries.  Leftover tool images are flushed into a
    single synthetic assistant entry.
    """
    entries: list[dict] = []
    pending: list[dict] = []
    last_timestamp: float | None = None

    for index, node in enumerate(path):
        message = node.get("message")
        if not isinstance(message, dict):
            continue

        role = NodeRole.of(message)
        timestamp = _message_timestamp(message)
        if timestamp is not None:
            last_timestamp = timestamp

        if role is NodeRole.USER:
            entries.append({
                "index": index, "sender": "human", "message": message,
                "timestamp": timestamp, "attachments": [],
            })
        elif role is NodeRole.ASSISTANT:
            if (message.get("recipient") or DEFAULT_RECIPIENT) != DEFAULT_RECIPIENT:
                continue
            attachments = [a for batch in pending for a in batch["attachments"]]
            pending.clear()
            entries.append({
                "index": index, "sender": "assistant", "message": message,
                "timestamp": timestamp, "attachments": attachments,
            })
        elif role is NodeRole.TOOL:
            images = extract_tool_images(message)
            if images:
                pending.append({
                    "index": index,
                    "timestamp": timestamp if timestamp is not None else last_timestamp,
                    "attachments": images,
                })

    if pending:
        own = next((b["timestamp"] for b in pending if b["timestamp"] is not None), None)
        entries.append({
            "index": pending[0]["index"],
            "sender": "assistant",
            "message": None,
            "timestamp": own if own is not None else last_timestamp,
            "attachments": [a for batch in pending for a in batch["attachments"]],
        })

    def sort_key(entry: dict) -> tuple[float, int]:
        ts = entry["timestamp"]
        return (ts if ts is not None else math.inf, entry["index"])

    return sorted(entries, key=sort_key)


def normalize_conversation(conversation: dict) -> Session:
    """Convert one ChatGPT conversation into a canonical session dict.

    Raises:
        InvalidSessionStructure: If the conversation is not an object or its
            mapping is malformed.
    """
    if not isinstance(conversation, dict):
        raise InvalidSessionStructure("Conversation is not an object")

    conversation_created = _epoch_to_iso(conversation.get("create_time"))
    chat_messages: list[Message] = []

    for entry in _visible_entries(walk_current_path(conversation)):
        message = entry["message"] or {}
        text = extract_text(message.get("content"))
        attachments = entry["attachments"]
        if not text and not attachments:
            continue

        created_at = (
            _epoch_to_iso(message.get("create_time"))
            or _epoch_to_iso(message.get("update_time"))
            or _epoch_to_iso(entry["timestamp"])
            or conversation_created
            or EPOCH_ISO
        )
        normalized: Message = {
            "uuid": message.get("id") or str(uuid.uuid4()),
            "text": text,
            "sender": entry["sender"],
            "created_at": created_at,
        }
        if attachments:
            normalized["attachments"] = attachments
        chat_messages.append(normalized)

    return {
        "uuid": conversation.get("conversation_id") or conversation.get("id") or str(uuid.uuid4()),
        "name": conversation.get("title") or UNNAMED_SESSION,
        "summary": "",
        "created_at": conversation_created or EPOCH_ISO,
        "updated_at": (
            _epoch_to_iso(conversation.get("update_time")) or conversation_created or EPOCH_ISO
        ),
        "chat_messages": chat_messages,
        "account": {"uuid": "chatgpt"},
    }


def normalize_chat_gpt_conversations(raw: Any) -> list[Session]:
    """Normalise a whole ChatGPT ``conversations.json`` array.

    Conversations that fail to normalise are logged and skipped.

    Raises:
        InvalidSessionStructure: If *raw* is not an array, or no conversation
            could be normalised.
    """
    if not isinstance(raw, list):
        raise InvalidSessionStructure("Invalid conversations.json format: expected an array")

    sessions: list[Session] = []
    for conversation in raw:
        if not conversation:
            continue
        try:
            sessions.append(normalize_conversation(conversation))
        except Exception:
            title = conversation.get("title", "unknown") if isinstance(conversation, dict) else "unknown"
            logger.warning("Skipping malformed ChatGPT conversation '%s'", title, exc_info=True)

    if not sessions:
        raise InvalidSessionStructure(
            "No conversations could be normalised from the ChatGPT export."
        )
    return sessions
