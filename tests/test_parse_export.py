"""Tests for parse_export.py: archive to canonical sessions."""

from __future__ import annotations

from typing import get_type_hints

import pytest

from export_errors import AmbiguousProvider, InvalidSessionStructure, MissingConversationsFile
from export_model import Session
from export_providers import Provider
from helpers import make_zip
from parse_export import ADAPTERS, normalize_sessions, parse_export


class TestParseExport:
    def test_claude_archive(self, claude_zip):
        provider, sessions = parse_export(claude_zip)
        assert provider is Provider.CLAUDE
        assert [s["uuid"] for s in sessions] == ["claude-1", "claude-2", "claude-3"]

    def test_chatgpt_archive(self, chat_gpt_zip):
        provider, sessions = parse_export(chat_gpt_zip)
        assert provider is Provider.CHATGPT
        assert len(sessions) == 1
        assert sessions[0]["name"] == "Cat drawing"
        assert sessions[0]["account"] == {"uuid": "chatgpt"}

    def test_archive_path(self, tmp_path, claude_zip):
        path = tmp_path / "export.zip"
        path.write_bytes(claude_zip)
        provider, sessions = parse_export(str(path))
        assert provider is Provider.CLAUDE
        assert len(sessions) == 3

    def test_override_forces_adapter(self, claude_zip):
        # The Claude log has no mapping trees, so every conversation
        # normalises to an empty session.
        provider, sessions = parse_export(claude_zip, provider_override="chatgpt")
        assert provider is Provider.CHATGPT
        assert all(s["chat_messages"] == [] for s in sessions)

    def test_empty_export_is_ambiguous(self):
        with pytest.raises(AmbiguousProvider):
            parse_export(make_zip({"conversations.json": []}))

    def test_filename_hint_resolves_provider(self):
        data = make_zip({"conversations.json": []})
        with pytest.raises(InvalidSessionStructure, match="No conversations"):
            parse_export(data, filename="claude-data.zip")

    def test_path_used_as_hint(self, tmp_path):
        path = tmp_path / "claude-export.zip"
        path.write_bytes(make_zip({"conversations.json": []}))
        with pytest.raises(InvalidSessionStructure):
            parse_export(str(path))

    def test_member_name_used_as_hint(self):
        data = make_zip({"openai-2024/conversations.json": []})
        with pytest.raises(InvalidSessionStructure):
            parse_export(data)

    def test_missing_log(self):
        with pytest.raises(MissingConversationsFile):
            parse_export(make_zip({"readme.txt": "hello"}))


class TestNormalizeSessions:
    def test_dispatches_by_provider(self, claude_conversations, chat_gpt_conversations):
        assert normalize_sessions(claude_conversations, "claude") is claude_conversations
        sessions = normalize_sessions(chat_gpt_conversations, Provider.CHATGPT)
        assert sessions[0]["uuid"] == "conv-1"

    def test_adapters_return_canonical_sessions(self):
        for adapter in ADAPTERS.values():
            assert get_type_hints(adapter)["return"] == list[Session]
