"""Work out which assistant produced an export."""

from __future__ import annotations

from enum import Enum
from typing import Any

from export_errors import AmbiguousProvider


class Provider(str, Enum):
    """Supported export schemas.

    ``CLAUDE`` exports are linear threads (``chat_messages``); ``CHATGPT``
    exports are branching node trees (``mapping`` + ``current_node``).
    """

    CLAUDE = "claude"
    CHATGPT = "chatgpt"


PROVIDER_LABELS = {
    Provider.CLAUDE: "Claude",
    Provider.CHATGPT: "ChatGPT",
}


def provider_label(provider: Provider | str) -> str:
    """Human-readable provider name, defaulting to Claude."""
    try:
        return PROVIDER_LABELS[Provider(provider)]
    except ValueError:
        return PROVIDER_LABELS[Provider.CLAUDE]


def detect_provider_from_json(raw: Any) -> Provider | None:
    """Classify an export by the shape of its first conversation.

    Args:
        raw: The parsed ``conversations.json`` value.

    Returns:
        The detected provider, or None when *raw* is not a non-empty list or
        its first element carries neither marker field.
    """
    if not isinstance(raw, list) or not raw:
        return None

    sample = raw[0]
    if not isinstance(sample, dict):
        return None
    if "chat_messages" in sample:
        return Provider.CLAUDE
    if "mapping" in sample:
        return Provider.CHATGPT
    return None


def infer_provider_from_path(path: str | None) -> Provider | None:
    """Guess the provider from a file or archive member name."""
    if not path:
        return None
    lower = str(path).lower()
    if "claude" in lower:
        return Provider.CLAUDE
    if "chatgpt" in lower or "openai" in lower:
        return Provider.CHATGPT
    return None


def resolve_provider(
    raw: Any,
    paths: list[str | None] | None = None,
    override: Provider | str | None = None,
) -> Provider:
    """Decide which adapter should normalise *raw*.

    An explicit *override* always wins.  Otherwise the JSON shape is checked,
    then each of *paths* in turn for a name hint.

    Raises:
        AmbiguousProvider: If nothing resolves; the caller should ask the user
            to pick a provider manually.
        ValueError: If *override* is not a known provider.
    """
    if override:
        return Provider(override)

    provider = detect_provider_from_json(raw)
    if provider is not None:
        return provider

    for path in paths or []:
        provider = infer_provider_from_path(path)
        if provider is not None:
            return provider

    raise AmbiguousProvider(
        "Could not determine whether this export came from Claude or ChatGPT. "
        "Please try selecting a provider manually."
    )
