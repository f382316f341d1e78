"""Shared test helpers for the Wrapped statistics tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime


def local_iso(year: int, month: int, day: int, hour: int = 10,
              minute: int = 0, second: int = 0) -> str:
    """ISO timestamp for a wall-clock time in the local timezone."""
    return datetime(year, month, day, hour, minute, second).astimezone().isoformat()


def make_message(sender: str, text: str, created_at: str, **extra) -> dict:
    """Build a canonical (Claude-shaped) message dict."""
    return {
        "uuid": f"msg-{sender}-{created_at}",
        "text": text,
        "sender": sender,
        "created_at": created_at,
        **extra,
    }


def make_session(
    messages: list[dict],
    created_at: str | None = None,
    name: str = "Test Chat",
    uuid: str = "session-1",
) -> dict:
    """Build a canonical session dict.

    Args:
        messages: Message dicts, already in order.
        created_at: Session creation time; defaults to the first message's.
        name: Display name.
        uuid: Session identifier.
    """
    if created_at is None:
        created_at = messages[0]["created_at"] if messages else local_iso(2024, 1, 1)
    return {
        "uuid": uuid,
        "name": name,
        "summary": "",
        "created_at": created_at,
        "updated_at": created_at,
        "chat_messages": messages,
        "account": {"uuid": "account-1"},
    }


def make_sessions_on_days(day_configs: list[tuple[str, int, int]]) -> list[dict]:
    """Build sessions spanning multiple days.

    Args:
        day_configs: List of (date_str, num_sessions, msgs_per_session)
            tuples.  Sessions start at 10:00 local, one hour apart; messages
            alternate human/assistant one minute apart.

    Returns:
        A list of canonical session dicts.
    """
    sessions = []
    for date_str, num_sessions, msgs_per_session in day_configs:
        base = datetime.fromisoformat(date_str + "T10:00:00")
        for s in range(num_sessions):
            start = base.timestamp() + s * 3600
            messages = []
            for m in range(msgs_per_session):
                ts = datetime.fromtimestamp(start + m * 60).astimezone().isoformat()
                sender = "human" if m % 2 == 0 else "assistant"
                messages.append(make_message(sender, f"msg-{s}-{m}", ts))
            created = datetime.fromtimestamp(start).astimezone().isoformat()
            sessions.append(
                make_session(messages, created_at=created, uuid=f"{date_str}-{s}")
            )
    return sessions


def make_node(
    node_id: str,
    parent: str | None,
    role: str | None = None,
    text: str | None = None,
    create_time: float | None = None,
    recipient: str | None = None,
    content: object = None,
    **message_extra,
) -> dict:
    """Build a ChatGPT mapping node.

    A node without *role* carries no message (like the export's root node).
    *content* overrides the default ``{"parts": [text]}`` layout.
    """
    node: dict = {"id": node_id, "parent": parent, "children": []}
    if role is None:
        node["message"] = None
        return node

    message: dict = {
        "id": f"m-{node_id}",
        "author": {"role": role},
        "create_time": create_time,
        "content": content if content is not None else {
            "content_type": "text", "parts": [text or ""],
        },
        **message_extra,
    }
    if recipient is not None:
        message["recipient"] = recipient
    node["message"] = message
    return node


def image_content(*pointers: str) -> dict:
    """Tool-message content holding image asset pointers."""
    return {
        "content_type": "multimodal_text",
        "parts": [
            {"content_type": "image_asset_pointer", "asset_pointer": p} for p in pointers
        ],
    }


def make_tree_conversation(
    nodes: list[dict],
    current_node: str | None = None,
    title: str = "Tree Chat",
    create_time: float | None = 1_704_103_200.0,
    conversation_id: str = "conv-1",
) -> dict:
    """Build a ChatGPT conversation from nodes; current_node defaults to the last one."""
    mapping = {node["id"]: node for node in nodes}
    for node in nodes:
        parent = node.get("parent")
        if parent in mapping:
            mapping[parent]["children"].append(node["id"])
    if current_node is None and nodes:
        current_node = nodes[-1]["id"]
    return {
        "id": conversation_id,
        "conversation_id": conversation_id,
        "title": title,
        "create_time": create_time,
        "update_time": create_time,
        "mapping": mapping,
        "current_node": current_node,
    }


def make_zip(files: dict[str, object]) -> bytes:
    """Build an in-memory ZIP.  Non-bytes values are JSON-encoded."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            elif not isinstance(content, bytes):
                content = json.dumps(content).encode("utf-8")
            zf.writestr(name, content)
    return buffer.getvalue()
