"""Reduce a statistics bundle to the subset that is safe and small to share."""

from __future__ import annotations

from typing import Any

BULK_FIELDS = (
    "session_durations_minutes",
    "session_message_counts",
    "first_message_tokens",
    "messages_by_hour",
    "sessions_by_day_of_week",
    "daily_data",
    "weekly_data",
    "monthly_data",
    "duration_distribution",
)

SHARED_DISTRIBUTION_LABELS = ("Quick Q&A", "Short")


def sanitize_for_sharing(stats: dict[str, Any]) -> dict[str, Any]:
    """Strip bulk arrays and identifying names from a statistics bundle.

    Only the "Quick Q&A" and "Short" message-distribution buckets and the
    first top session are kept; the longest session loses its name.  The
    input bundle is not modified.

    Args:
        stats: Bundle from ``analytics.calculate_stats``.

    Returns:
        A new, much smaller dict.
    """
    shared = {key: value for key, value in stats.items() if key not in BULK_FIELDS}

    shared["longest_session"] = {**stats["longest_session"], "name": ""}
    shared["message_distribution"] = [
        row for row in stats["message_distribution"]
        if any(label in row["label"] for label in SHARED_DISTRIBUTION_LABELS)
    ]
    shared["top_sessions"] = stats["top_sessions"][:1]
    return shared
