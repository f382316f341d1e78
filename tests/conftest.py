"""Shared fixtures for the Wrapped statistics tests."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpers import (
    image_content,
    local_iso,
    make_message,
    make_node,
    make_session,
    make_tree_conversation,
    make_zip,
)


# ── Sample exports ──


def _claude_conversations() -> list[dict]:
    return [
        make_session(
            [
                make_message("human", "Hi Claude. Can you help me plan a trip?", local_iso(2024, 3, 1, 9, 0)),
                make_message("assistant", "Of course! Where to?", local_iso(2024, 3, 1, 9, 1)),
                make_message("human", "Lisbon, thanks!", local_iso(2024, 3, 1, 9, 12)),
            ],
            name="Trip planning",
            uuid="claude-1",
        ),
        make_session(
            [
                make_message("human", "Explain decorators", local_iso(2024, 3, 2, 21, 0)),
                make_message("assistant", "Sorry, let me clarify first.", local_iso(2024, 3, 2, 21, 2)),
            ],
            name="Python help",
            uuid="claude-2",
        ),
        make_session([], created_at=local_iso(2024, 3, 3), name="", uuid="claude-3"),
    ]


def _chat_gpt_conversations() -> list[dict]:
    base = datetime(2024, 3, 1, 10, 0).timestamp()
    return [
        make_tree_conversation(
            [
                make_node("root", None),
                make_node("u1", "root", "user", "Draw a cat", base),
                make_node("a1", "u1", "assistant", '{"prompt": "cat"}', base + 5, recipient="dalle.text2im"),
                make_node("t1", "a1", "tool", create_time=base + 30, content=image_content("file-1", "file-2")),
                make_node("a2", "t1", "assistant", "Here you go", base + 31, recipient="all"),
            ],
            title="Cat drawing",
            create_time=base,
        ),
    ]


@pytest.fixture()
def claude_conversations():
    return _claude_conversations()


@pytest.fixture()
def chat_gpt_conversations():
    return _chat_gpt_conversations()


@pytest.fixture()
def claude_zip() -> bytes:
    """A Claude export with the log nested in a data folder."""
    return make_zip({"data-2024-03/conversations.json": _claude_conversations()})


@pytest.fixture()
def chat_gpt_zip() -> bytes:
    return make_zip({"conversations.json": _chat_gpt_conversations()})


# ── Minimal stats payload for app.py tests ──


def _minimal_stats() -> dict:
    """Return a small bundle with the keys the service and sanitizer touch."""
    return {
        "provider": "claude",
        "total_sessions": 2,
        "total_messages": 5,
        "session_durations_minutes": [12, 2],
        "session_message_counts": [3, 2],
        "daily_data": [],
        "longest_session": {
            "name": "Trip planning",
            "duration": "12 minutes",
            "duration_seconds": 720.0,
            "messages": 3,
            "date": "Mar 1, 2024",
        },
        "message_distribution": [
            {"label": "Empty (0)", "count": 0, "percentage": 0.0},
            {"label": "Quick Q&A (1-4)", "count": 2, "percentage": 100.0},
        ],
        "top_sessions": [],
    }


@pytest.fixture()
def mock_stats():
    return _minimal_stats()


@pytest.fixture()
def client(mock_stats):
    """TestClient for app.py with the archive pipeline mocked out.

    Patches build_wrapped_stats so no export archive is needed.
    Resets the module-level cache between tests.
    """
    import app as app_module

    with patch.object(
        app_module, "_cache", {"data": None, "built_at": 0.0}
    ):
        with patch(
            "app.build_wrapped_stats", return_value=mock_stats
        ) as build:
            with TestClient(app_module.app) as tc:
                tc.build_mock = build
                yield tc


@pytest.fixture()
def live_client():
    """TestClient for app.py running the real pipeline."""
    import app as app_module

    with patch.object(app_module, "_cache", {"data": None, "built_at": 0.0}):
        with TestClient(app_module.app) as tc:
            yield tc
