"""Turn an export archive into canonical sessions.

Archive -> provider detection -> schema adapter.  Each adapter takes the raw
``conversations.json`` value and returns a list of canonical session dicts.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable

from chat_gpt_tree import normalize_chat_gpt_conversations
from claude_export import parse_claude_conversations
from export_archive import ArchiveSource, read_conversations_json
from export_model import Session
from export_providers import Provider, resolve_provider

logger = logging.getLogger(__name__)

ADAPTERS: dict[Provider, Callable[[Any], list[Session]]] = {
    Provider.CLAUDE: parse_claude_conversations,
    Provider.CHATGPT: normalize_chat_gpt_conversations,
}


def normalize_sessions(raw: Any, provider: Provider | str) -> list[Session]:
    """Run the adapter registered for *provider* over *raw*."""
    return ADAPTERS[Provider(provider)](raw)


def parse_export(
    source: ArchiveSource,
    provider_override: Provider | str | None = None,
    filename: str | None = None,
) -> tuple[Provider, list[Session]]:
    """Read an export archive and return its provider and canonical sessions.

    Args:
        source: Archive path, bytes, or binary file object.
        provider_override: Skip detection and use this provider.
        filename: Original upload name, used as a last provider hint.  Defaults
            to *source* when it is a path.

    Returns:
        A tuple of (provider, sessions).

    Raises:
        ParseError: Any of its subclasses, for unreadable archives, bad JSON,
            unrecognised structure, or an undeterminable provider.
    """
    member, raw = read_conversations_json(source)

    if filename is None and isinstance(source, (str, os.PathLike)):
        filename = os.fspath(source)

    provider = resolve_provider(raw, paths=[member, filename], override=provider_override)
    sessions = normalize_sessions(raw, provider)
    logger.info("Parsed %d %s sessions from %s", len(sessions), provider.value, member)
    return provider, sessions
