"""Core statistics for AI-assistant "Wrapped" summaries.

Computes every derived metric from the canonical session list produced by
``parse_export``.  Used by both the CLI (wrapped_summary.py) and the web
service (app.py).

All computations are pure: they read the session list and return new dicts.
Division by zero is always guarded to yield 0.
"""

from __future__ import annotations

import json
import logging
import math
import os
import re
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from export_model import Session, message_text, parse_timestamp, session_messages, session_name
from export_providers import Provider, provider_label
from parse_export import parse_export

logger = logging.getLogger(__name__)

HARRY_POTTER_WORDS = 1_084_170  # all seven books
CHARS_PER_TOKEN = 4
WORDS_PER_TOKEN = 0.75
TOP_SESSIONS_LIMIT = 10
POWER_DAYS_LIMIT = 4
FIRST_MESSAGE_WORDS = 20
LATEST_MESSAGE_WORDS = 30

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# (label, lowest count, highest count) -- inclusive, None means unbounded
MESSAGE_BUCKETS: list[tuple[str, int, int | None]] = [
    ("Empty (0)", 0, 0),
    ("Quick Q&A (1-4)", 1, 4),
    ("Short (5-10)", 5, 10),
    ("Medium (11-25)", 11, 25),
    ("Long (26-50)", 26, 50),
    ("Deep Dive (50+)", 51, None),
]

# (label, from minutes, to minutes) -- half-open, None means unbounded
DURATION_BUCKETS: list[tuple[str, int, int | None]] = [
    ("Under 1 minute", 0, 1),
    ("1-10 minutes", 1, 10),
    ("10-60 minutes", 10, 60),
    ("1-4 hours", 60, 240),
    ("4-24 hours", 240, 1440),
    ("Multi-day (24+ hours)", 1440, None),
]

# (period, emoji, first hour, end hour)
TIME_OF_DAY_BANDS: list[tuple[str, str, int, int]] = [
    ("Morning", "\u2600\ufe0f", 6, 12),
    ("Afternoon", "\U0001f324\ufe0f", 12, 18),
    ("Evening", "\U0001f306", 18, 24),
    ("Midnight", "\U0001f319", 0, 6),
]
MIDNIGHT_BAND = 3

THANK_PATTERN = re.compile(r"\b(thank|thanks|thx|ty|appreciate)\b", re.IGNORECASE)
PARDON_PATTERN = re.compile(r"\bpardon me\b", re.IGNORECASE)
APOLOGY_SUBSTRINGS = ("sorry", "apolog")

SENTENCE_PATTERN = re.compile(r"^[^.!?]+[.!?]")

NOT_AVAILABLE = "N/A"


# ---------------------------------------------------------------------------
# Number and text formatting helpers
# ---------------------------------------------------------------------------

def _to_fixed(value: float, digits: int) -> float:
    """Round half-up to *digits* places on the exact binary value of *value*."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _safe_div(num: float, den: float, default: float = 0.0) -> float:
    """Safe division returning *default* when denominator is zero.

    Args:
        num: Numerator.
        den: Denominator.
        default: Value returned when *den* is zero.

    Returns:
        ``num / den``, or *default*.
    """
    return num / den if den else default


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def estimate_tokens(text: str) -> int:
    """Approximate a token count as one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as a short human-readable string.

    Args:
        seconds: Non-negative duration.

    Returns:
        ``"N seconds"`` under a minute, ``"N minute(s)"`` under an hour,
        ``"N hour(s)[, M min]"`` under a day, else ``"N day(s)[, H hour(s)]"``.
        Minutes and hours are whole units elapsed.
    """
    if seconds < 60:
        return f"{_round_half_up(seconds)} seconds"
    if seconds < 3600:
        return _plural(int(seconds // 60), "minute")
    if seconds < 86400:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        text = _plural(hours, "hour")
        return f"{text}, {minutes} min" if minutes > 0 else text
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    text = _plural(days, "day")
    return f"{text}, {_plural(hours, 'hour')}" if hours > 0 else text


def _full_months_between(start: datetime, end: datetime) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and (end.day, end.time()) < (start.day, start.time()):
        months -= 1
    return max(months, 0)


def calculate_account_age(earliest: datetime, latest: datetime) -> str:
    """Describe the span between two datetimes as years and months.

    Returns:
        ``"N year(s)[, M month(s)]"`` when at least a year apart, else
        ``"M month(s)"``.
    """
    months_total = _full_months_between(earliest, latest)
    years, months = divmod(months_total, 12)
    if years > 0:
        text = _plural(years, "year")
        return f"{text}, {_plural(months, 'month')}" if months > 0 else text
    return _plural(months, "month")


def _format_day(moment: datetime | date | None) -> str:
    """Format like ``Jan 5, 2024``."""
    if moment is None:
        return NOT_AVAILABLE
    return f"{moment:%b} {moment.day}, {moment.year}"


def _format_month(moment: datetime | date | None) -> str:
    """Format like ``Jan 2024``."""
    if moment is None:
        return NOT_AVAILABLE
    return f"{moment:%b %Y}"


def truncate_first_message(text: str) -> str:
    """Shorten to the first sentence or the first 20 words, whichever is shorter.

    Args:
        text: Raw message text.

    Returns:
        The trimmed first sentence (including its terminator), or the first
        20 words with ``...`` appended when more words follow.
    """
    full = text.strip()
    match = SENTENCE_PATTERN.match(full)
    first_sentence = match.group(0).strip() if match else full
    first_words = _first_words(full, FIRST_MESSAGE_WORDS)
    return first_sentence if len(first_sentence) <= len(first_words) else first_words


def _first_words(text: str, limit: int) -> str:
    words = text.strip().split()
    head = " ".join(words[:limit])
    return head + "..." if len(words) > limit else head


# ---------------------------------------------------------------------------
# Session accessors
# ---------------------------------------------------------------------------

def _session_created(session: dict) -> datetime | None:
    return parse_timestamp(session.get("created_at"))


def _message_created(message: Any) -> datetime | None:
    if not isinstance(message, dict):
        return None
    return parse_timestamp(message.get("created_at"))


def _is_human(message: Any) -> bool:
    return isinstance(message, dict) and message.get("sender") == "human"


def _session_tokens(session: dict) -> int:
    return sum(estimate_tokens(message_text(m)) for m in session_messages(session))


def _image_count(message: Any) -> int:
    if not isinstance(message, dict):
        return 0
    attachments = message.get("attachments")
    if not isinstance(attachments, list):
        return 0
    total = 0
    for attachment in attachments:
        if isinstance(attachment, dict) and attachment.get("type") == "image":
            count = attachment.get("count")
            total += count if isinstance(count, int) else 0
    return total


def _sorted_by_creation(sessions: list[dict], reverse: bool = False) -> list[dict]:
    dated = [(created, s) for s in sessions if (created := _session_created(s)) is not None]
    dated.sort(key=lambda pair: pair[0], reverse=reverse)
    return [s for _, s in dated]


# ---------------------------------------------------------------------------
# Message-level totals
# ---------------------------------------------------------------------------

def compute_message_totals(sessions: list[dict]) -> dict[str, Any]:
    """Count messages and estimated tokens, split by sender.

    Args:
        sessions: Canonical session dicts.

    Returns:
        Dict with keys total_messages, total_tokens, estimated_words,
        harry_potter_multiple, human_messages, assistant_messages,
        human_tokens, assistant_tokens, turn_taking_ratio,
        first_message_tokens (tokens of each session's opening message),
        and messages_by_hour (24 local-hour counts).
    """
    totals = {
        "total_messages": 0,
        "total_tokens": 0,
        "human_messages": 0,
        "assistant_messages": 0,
        "human_tokens": 0,
        "assistant_tokens": 0,
    }
    first_message_tokens: list[int] = []
    messages_by_hour = [0] * 24

    for session in sessions:
        messages = session_messages(session)
        if messages:
            first_message_tokens.append(estimate_tokens(message_text(messages[0])))

        for message in messages:
            tokens = estimate_tokens(message_text(message))
            totals["total_messages"] += 1
            totals["total_tokens"] += tokens

            if _is_human(message):
                totals["human_messages"] += 1
                totals["human_tokens"] += tokens
            else:
                totals["assistant_messages"] += 1
                totals["assistant_tokens"] += tokens

            created = _message_created(message)
            if created is not None:
                messages_by_hour[created.hour] += 1

    estimated_words = _round_half_up(totals["total_tokens"] * WORDS_PER_TOKEN)
    totals["estimated_words"] = estimated_words
    totals["harry_potter_multiple"] = _to_fixed(estimated_words / HARRY_POTTER_WORDS, 1)
    totals["turn_taking_ratio"] = (
        _to_fixed(totals["assistant_tokens"] / totals["human_tokens"], 1)
        if totals["human_tokens"] > 0
        else 0
    )
    totals["first_message_tokens"] = first_message_tokens
    totals["messages_by_hour"] = messages_by_hour
    return totals


def compute_politeness(sessions: list[dict]) -> dict[str, Any]:
    """Count gratitude from the human and apologies from the assistant.

    A human message counts once if it contains thank/thanks/thx/ty/appreciate
    as a whole word.  An assistant message counts once if it contains
    "sorry", "apolog" or "pardon me" (case-insensitive).

    Args:
        sessions: Canonical session dicts.

    Returns:
        Dict with keys thank_you_count, thank_you_percentage (share of human
        messages, 2dp) and apology_count.
    """
    thank_you_count = 0
    apology_count = 0
    human_messages = 0

    for session in sessions:
        for message in session_messages(session):
            text = message_text(message)
            if _is_human(message):
                human_messages += 1
                if THANK_PATTERN.search(text):
                    thank_you_count += 1
            else:
                lowered = text.lower()
                if any(s in lowered for s in APOLOGY_SUBSTRINGS) or PARDON_PATTERN.search(text):
                    apology_count += 1

    return {
        "thank_you_count": thank_you_count,
        "thank_you_percentage": (
            _to_fixed(thank_you_count / human_messages * 100, 2) if human_messages else 0
        ),
        "apology_count": apology_count,
    }


def compute_time_of_day(sessions: list[dict]) -> dict[str, Any]:
    """Bucket every message into four local-time bands.

    Every message is counted.  Messages whose timestamp cannot be parsed
    fall into the Midnight band.

    Returns:
        Dict with key periods: a list of {period, emoji, count, percentage}
        in Morning, Afternoon, Evening, Midnight order.
    """
    counts = [0] * len(TIME_OF_DAY_BANDS)
    total = 0
    for session in sessions:
        for message in session_messages(session):
            total += 1
            created = _message_created(message)
            if created is None:
                counts[MIDNIGHT_BAND] += 1
                continue
            for i, (_, _, start, end) in enumerate(TIME_OF_DAY_BANDS):
                if start <= created.hour < end:
                    counts[i] += 1
                    break

    return {
        "periods": [
            {
                "period": period,
                "emoji": emoji,
                "count": count,
                "percentage": _to_fixed(count / total * 100, 1) if total > 0 else 0,
            }
            for (period, emoji, _, _), count in zip(TIME_OF_DAY_BANDS, counts)
        ]
    }


def compute_image_usage(sessions: list[dict]) -> dict[str, Any] | None:
    """Summarise image attachments.

    Returns:
        Dict with keys total_images, sessions_with_images and top_session
        ({name, date, image_count} for the session with the most images,
        first one wins on ties), or None if there are no images.
    """
    total_images = 0
    sessions_with_images = 0
    top_session: dict[str, Any] | None = None

    for session in sessions:
        session_images = sum(_image_count(m) for m in session_messages(session))
        if session_images <= 0:
            continue
        total_images += session_images
        sessions_with_images += 1
        if top_session is None or session_images > top_session["image_count"]:
            top_session = {
                "name": session_name(session),
                "date": session.get("created_at"),
                "image_count": session_images,
            }

    if total_images == 0:
        return None
    return {
        "total_images": total_images,
        "sessions_with_images": sessions_with_images,
        "top_session": top_session,
    }


# ---------------------------------------------------------------------------
# Calendar buckets
# ---------------------------------------------------------------------------

def _week_start(day: date) -> date:
    """Sunday on or before *day*."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def compute_daily_data(sessions: list[dict]) -> list[dict]:
    """Group sessions by local creation day.

    Returns:
        List of {date (YYYY-MM-DD), sessions, messages} sorted ascending.
    """
    daily: dict[date, dict] = {}
    for session in sessions:
        created = _session_created(session)
        if created is None:
            continue
        bucket = daily.setdefault(created.date(), {"sessions": 0, "messages": 0})
        bucket["sessions"] += 1
        bucket["messages"] += len(session_messages(session))

    return [
        {"date": day.isoformat(), "sessions": b["sessions"], "messages": b["messages"]}
        for day, b in sorted(daily.items())
    ]


def compute_weekly_data(sessions: list[dict]) -> list[dict]:
    """Group sessions into Sunday-starting weeks.

    Returns:
        List of {week (YYYY-MM-DD of the Sunday), sessions} sorted ascending.
    """
    weekly: dict[date, int] = {}
    for session in sessions:
        created = _session_created(session)
        if created is None:
            continue
        start = _week_start(created.date())
        weekly[start] = weekly.get(start, 0) + 1
    return [{"week": start.isoformat(), "sessions": n} for start, n in sorted(weekly.items())]


def compute_monthly_data(sessions: list[dict]) -> list[dict]:
    """Group sessions by calendar month.

    Returns:
        List of {month (YYYY-MM), sessions} sorted ascending.
    """
    monthly: dict[str, int] = {}
    for session in sessions:
        created = _session_created(session)
        if created is None:
            continue
        key = f"{created:%Y-%m}"
        monthly[key] = monthly.get(key, 0) + 1
    return [{"month": month, "sessions": n} for month, n in sorted(monthly.items())]


def _first_maximum(buckets: list[dict]) -> dict | None:
    best = None
    for bucket in buckets:
        if best is None or bucket["sessions"] > best["sessions"]:
            best = bucket
    return best


def find_peak_week(weekly_data: list[dict]) -> dict[str, Any]:
    """Return the week with the most sessions; the earliest wins on ties."""
    best = _first_maximum(weekly_data)
    if best is None:
        return {"date": NOT_AVAILABLE, "week_start": None, "count": 0}
    start = date.fromisoformat(best["week"])
    return {"date": _format_day(start), "week_start": best["week"], "count": best["sessions"]}


def find_peak_month(monthly_data: list[dict]) -> dict[str, Any]:
    """Return the month with the most sessions; the earliest wins on ties."""
    best = _first_maximum(monthly_data)
    if best is None:
        return {"date": NOT_AVAILABLE, "month_start": None, "count": 0}
    start = date.fromisoformat(best["month"] + "-01")
    return {"date": _format_month(start), "month_start": best["month"], "count": best["sessions"]}


def find_busiest_day(daily_data: list[dict]) -> dict[str, Any] | None:
    """Return the day with the most sessions.

    Ties go to the day with more messages, then to the earlier day.
    """
    best = None
    for day in daily_data:
        if (
            best is None
            or day["sessions"] > best["sessions"]
            or (day["sessions"] == best["sessions"] and day["messages"] > best["messages"])
        ):
            best = day
    return dict(best) if best is not None else None


def compute_sessions_by_day_of_week(sessions: list[dict]) -> dict[str, int]:
    """Count sessions per weekday, Sunday first."""
    counts = {name: 0 for name in DAY_NAMES}
    for session in sessions:
        created = _session_created(session)
        if created is not None:
            counts[DAY_NAMES[(created.weekday() + 1) % 7]] += 1
    return counts


def compute_power_days(by_day_of_week: dict[str, int]) -> dict[str, list[str]]:
    """Pick the four busiest weekdays (stable on ties)."""
    ranked = sorted(by_day_of_week.items(), key=lambda item: item[1], reverse=True)
    return {"top_days": [day for day, _ in ranked[:POWER_DAYS_LIMIT]]}


def compute_active_dates_this_year(daily_data: list[dict], year: int) -> list[str]:
    """Active days (YYYY-MM-DD) that fall in *year*, ascending."""
    prefix = str(year)
    return [d["date"] for d in daily_data if d["date"].startswith(prefix)]


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

def _empty_streaks() -> dict[str, Any]:
    return {
        "longest": {"length": 0, "start_date": None, "end_date": None, "session_count": 0},
        "current": {
            "length": 0,
            "is_active": False,
            "start_date": None,
            "end_date": None,
            "session_count": None,
        },
        "total_active_days": 0,
        "days_since_last_conversation": None,
    }


def compute_streaks(sessions: list[dict], today: date) -> dict[str, Any]:
    """Find runs of consecutive calendar days with at least one session.

    Args:
        sessions: Canonical session dicts (local creation day is used).
        today: The reference day for the current streak.

    Returns:
        Dict with keys:
            - longest: {length, start_date, end_date, session_count}; equal
              lengths go to the run with more sessions, then the earlier run.
            - current: {length, is_active, start_date, end_date,
              session_count}.  Active when the last active day is at most one
              day before *today*; otherwise length 0 and the rest None.
            - total_active_days: distinct active days.
            - days_since_last_conversation: int, or None with no activity.
    """
    day_counts: dict[date, int] = {}
    for session in sessions:
        created = _session_created(session)
        if created is not None:
            day = created.date()
            day_counts[day] = day_counts.get(day, 0) + 1

    days = sorted(day_counts.items())
    if not days:
        return _empty_streaks()

    longest = {"length": 1, "start": days[0][0], "end": days[0][0], "sessions": days[0][1]}
    run = dict(longest)

    def commit_longest() -> None:
        nonlocal longest
        if run["length"] > longest["length"] or (
            run["length"] == longest["length"] and run["sessions"] > longest["sessions"]
        ):
            longest = dict(run)

    for (prev_day, _), (day, count) in zip(days, days[1:]):
        if (day - prev_day).days == 1:
            run["length"] += 1
            run["sessions"] += count
        else:
            commit_longest()
            run = {"length": 1, "start": day, "end": day, "sessions": count}
        run["end"] = day
    commit_longest()

    last_day, last_count = days[-1]
    days_since_last = (today - last_day).days
    current = {
        "length": 0,
        "is_active": days_since_last <= 1,
        "start_date": None,
        "end_date": None,
        "session_count": None,
    }
    if current["is_active"]:
        length, start, session_count = 1, last_day, last_count
        for i in range(len(days) - 2, -1, -1):
            day, count = days[i]
            if (days[i + 1][0] - day).days != 1:
                break
            length += 1
            start = day
            session_count += count
        current.update(
            length=length,
            start_date=start.isoformat(),
            end_date=last_day.isoformat(),
            session_count=session_count,
        )

    return {
        "longest": {
            "length": longest["length"],
            "start_date": longest["start"].isoformat(),
            "end_date": longest["end"].isoformat(),
            "session_count": longest["sessions"],
        },
        "current": current,
        "total_active_days": len(days),
        "days_since_last_conversation": days_since_last,
    }


# ---------------------------------------------------------------------------
# Session durations and rankings
# ---------------------------------------------------------------------------

def _placeholder_longest_session() -> dict[str, Any]:
    return {
        "name": NOT_AVAILABLE,
        "duration": "0 seconds",
        "duration_seconds": 0,
        "messages": 0,
        "date": NOT_AVAILABLE,
    }


def compute_session_durations(sessions: list[dict]) -> dict[str, Any]:
    """Measure how long each multi-message session lasted.

    Duration is the absolute gap between a session's first and last message.
    Sessions with fewer than two messages, or unparseable endpoints, are
    skipped.

    Args:
        sessions: Canonical session dicts.

    Returns:
        Dict with keys:
            - durations_minutes: whole minutes (half-up) per measured session,
              in session order.
            - longest_session: {name, duration, duration_seconds, messages,
              date}, or a placeholder when nothing was measured.
            - median_duration: formatted element ``n // 2`` of the sorted
              minute list (upper-middle for even sizes), or "0 seconds".
    """
    durations_minutes: list[int] = []
    longest: dict[str, Any] | None = None
    max_seconds = 0.0

    for session in sessions:
        messages = session_messages(session)
        if len(messages) < 2:
            continue
        first = _message_created(messages[0])
        last = _message_created(messages[-1])
        if first is None or last is None:
            continue

        seconds = abs((last - first).total_seconds())
        durations_minutes.append(_round_half_up(seconds / 60))

        if seconds > max_seconds:
            max_seconds = seconds
            longest = {
                "name": session_name(session),
                "duration": format_duration(seconds),
                "duration_seconds": seconds,
                "messages": len(messages),
                "date": _format_day(_session_created(session)),
            }

    ordered = sorted(durations_minutes)
    median = format_duration(ordered[len(ordered) // 2] * 60) if ordered else "0 seconds"

    return {
        "durations_minutes": durations_minutes,
        "longest_session": longest or _placeholder_longest_session(),
        "median_duration": median,
    }


def compute_top_sessions(sessions: list[dict], limit: int = TOP_SESSIONS_LIMIT) -> list[dict]:
    """Rank sessions by message count, most first, keeping the first *limit*.

    Returns:
        List of {name, messages, date, tokens}.  Equal counts keep input order.
    """
    ranked = sorted(sessions, key=lambda s: len(session_messages(s)), reverse=True)
    return [
        {
            "name": session_name(session),
            "messages": len(session_messages(session)),
            "date": _format_day(_session_created(session)),
            "tokens": _session_tokens(session),
        }
        for session in ranked[:limit]
    ]


def _distribution(
    values: list[int], buckets: list[tuple[str, int, int | None]], inclusive: bool,
) -> list[dict]:
    population = len(values)
    rows = []
    for label, low, high in buckets:
        if high is None:
            count = sum(1 for v in values if v >= low)
        elif inclusive:
            count = sum(1 for v in values if low <= v <= high)
        else:
            count = sum(1 for v in values if low <= v < high)
        rows.append({
            "label": label,
            "count": count,
            "percentage": _to_fixed(count / population * 100, 1) if population else 0,
        })
    return rows


def compute_message_distribution(message_counts: list[int]) -> list[dict]:
    """Bucket per-session message counts (0 / 1-4 / 5-10 / 11-25 / 26-50 / 51+)."""
    return _distribution(message_counts, MESSAGE_BUCKETS, inclusive=True)


def compute_duration_distribution(durations_minutes: list[int]) -> list[dict]:
    """Bucket session durations in minutes (<1 / 1-10 / 10-60 / 60-240 / 240-1440 / 1440+)."""
    return _distribution(durations_minutes, DURATION_BUCKETS, inclusive=False)


# ---------------------------------------------------------------------------
# First and latest prompts
# ---------------------------------------------------------------------------

def _first_human_text(session: dict) -> str | None:
    for message in session_messages(session):
        if _is_human(message) and message_text(message).strip():
            return message_text(message).strip()
    return None


def find_first_message(sessions: list[dict]) -> dict[str, str] | None:
    """The opening human prompt of the earliest session that has one.

    Returns:
        {text, date} with text cut to the first sentence or 20 words, or
        None when no session has a non-blank human message.
    """
    for session in _sorted_by_creation(sessions):
        text = _first_human_text(session)
        if text is not None:
            return {
                "text": truncate_first_message(text),
                "date": _format_day(_session_created(session)),
            }
    return None


def find_latest_message(sessions: list[dict]) -> dict[str, str] | None:
    """The opening human prompt of the most recent session that has one, cut to 30 words."""
    for session in _sorted_by_creation(sessions, reverse=True):
        text = _first_human_text(session)
        if text is not None:
            return {
                "text": _first_words(text, LATEST_MESSAGE_WORDS),
                "date": _format_day(_session_created(session)),
            }
    return None


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def _date_range(sessions: list[dict]) -> dict[str, str]:
    dates = [created for s in sessions if (created := _session_created(s)) is not None]
    if not dates:
        return {
            "earliest_date": NOT_AVAILABLE,
            "latest_date": NOT_AVAILABLE,
            "account_age": _plural(0, "month"),
        }
    earliest, latest = min(dates), max(dates)
    return {
        "earliest_date": _format_month(earliest),
        "latest_date": _format_month(latest),
        "account_age": calculate_account_age(earliest, latest),
    }


def calculate_stats(
    sessions: list[Session],
    provider: Provider | str = Provider.CLAUDE,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Compute the full Wrapped statistics bundle.

    Empty sessions (no messages) count toward total_sessions,
    session_message_counts, message_distribution and top_sessions, and are
    excluded from everything date- or duration-based.

    Args:
        sessions: Canonical session dicts from ``parse_export``.
        provider: Which assistant the export came from.
        now: Reference time for the current streak and current year.
            Defaults to the current local time.

    Returns:
        A JSON-serialisable dict.  Identical *sessions* and *now* always give
        an identical bundle.
    """
    now = now or datetime.now().astimezone()
    provider = Provider(provider)
    sessions = [s for s in sessions if isinstance(s, dict)]
    non_empty = [s for s in sessions if session_messages(s)]
    logger.debug("Calculating stats for %d sessions (%s)", len(sessions), provider.value)

    message_counts = [len(session_messages(s)) for s in sessions]
    totals = compute_message_totals(sessions)
    durations = compute_session_durations(non_empty)
    daily_data = compute_daily_data(non_empty)
    weekly_data = compute_weekly_data(non_empty)
    monthly_data = compute_monthly_data(non_empty)
    by_day_of_week = compute_sessions_by_day_of_week(non_empty)

    stats: dict[str, Any] = {
        "provider": provider.value,
        "total_sessions": len(sessions),
        "total_messages": totals["total_messages"],
        "total_tokens": totals["total_tokens"],
        "estimated_words": totals["estimated_words"],
        "harry_potter_multiple": totals["harry_potter_multiple"],
        **_date_range(non_empty),
        "session_durations_minutes": durations["durations_minutes"],
        "session_message_counts": message_counts,
        "first_message_tokens": totals["first_message_tokens"],
        "messages_by_hour": totals["messages_by_hour"],
        "sessions_by_day_of_week": by_day_of_week,
        "daily_data": daily_data,
        "weekly_data": weekly_data,
        "monthly_data": monthly_data,
        "peak_week": find_peak_week(weekly_data),
        "peak_month": find_peak_month(monthly_data),
        "busiest_day": find_busiest_day(daily_data),
        "longest_session": durations["longest_session"],
        "median_duration": durations["median_duration"],
        "turn_taking_ratio": totals["turn_taking_ratio"],
        "human_messages": totals["human_messages"],
        "assistant_messages": totals["assistant_messages"],
        "human_tokens": totals["human_tokens"],
        "assistant_tokens": totals["assistant_tokens"],
        "top_sessions": compute_top_sessions(sessions),
        "message_distribution": compute_message_distribution(message_counts),
        "duration_distribution": compute_duration_distribution(durations["durations_minutes"]),
        "sessions_per_week": _to_fixed(_safe_div(len(non_empty), len(weekly_data)), 1),
        "messages_per_session": _to_fixed(_safe_div(totals["total_messages"], len(sessions)), 1),
        **compute_politeness(sessions),
        "power_days": compute_power_days(by_day_of_week),
        "time_of_day": compute_time_of_day(sessions),
        "image_usage": compute_image_usage(non_empty),
        "streaks": compute_streaks(non_empty, now.date()),
        "first_message": find_first_message(non_empty),
        "latest_message": find_latest_message(non_empty),
        "active_dates_this_year": compute_active_dates_this_year(daily_data, now.year),
    }

    logger.info(
        "Stats calculated: %d sessions, %d messages, %d tokens, peak week %d sessions",
        stats["total_sessions"],
        stats["total_messages"],
        stats["total_tokens"],
        stats["peak_week"]["count"],
    )
    return stats


def build_wrapped_stats(
    source: Any,
    provider_override: Provider | str | None = None,
    filename: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One-call entry point: read the archive, normalise it, compute all stats.

    This is the only function the CLI and the web service need to call.

    Args:
        source: Archive path, bytes, or binary file object.
        provider_override: Force the export schema instead of detecting it.
        filename: Original upload name, used as a provider hint.
        now: Reference time passed to ``calculate_stats``.

    Returns:
        The statistics bundle from ``calculate_stats``.

    Raises:
        FileNotFoundError: If *source* is a path that does not exist.
        ParseError: If the archive or its contents cannot be used.
    """
    provider, sessions = parse_export(source, provider_override, filename)
    return calculate_stats(sessions, provider, now=now)


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def save_stats_file(stats: dict[str, Any], output_file: str) -> None:
    """Write the statistics bundle as indented JSON.

    Args:
        stats: Bundle from ``calculate_stats``.
        output_file: Destination path.  Parent directories are created.
    """
    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2, ensure_ascii=False)


def print_summary_report(stats: dict[str, Any]) -> None:
    """Print the CLI summary report to stdout.

    Args:
        stats: Bundle from ``calculate_stats``.
    """
    label = provider_label(stats["provider"])
    print(f"\n{'=' * 60}")
    print(f"Your {label} Wrapped")
    print(f"{'=' * 60}")
    print(f"Conversations: {stats['total_sessions']:,}")
    print(f"Messages: {stats['total_messages']:,}")
    print(f"Estimated Words: {stats['estimated_words']:,} "
          f"({stats['harry_potter_multiple']}x the Harry Potter series)")
    print(f"Active: {stats['earliest_date']} - {stats['latest_date']} ({stats['account_age']})")
    print(f"Sessions per Week: {stats['sessions_per_week']}")
    print(f"Messages per Session: {stats['messages_per_session']}")
    print(f"Peak Week: {stats['peak_week']['date']} ({stats['peak_week']['count']:,} sessions)")
    print(f"Peak Month: {stats['peak_month']['date']} ({stats['peak_month']['count']:,} sessions)")

    busiest = stats.get("busiest_day")
    if busiest:
        print(f"Busiest Day: {busiest['date']} "
              f"({busiest['sessions']:,} sessions, {busiest['messages']:,} messages)")

    longest = stats["longest_session"]
    print(f"\nLongest Session: {longest['name']} - {longest['duration']} "
          f"({longest['messages']:,} messages, {longest['date']})")
    print(f"Median Session: {stats['median_duration']}")
    print(f"{label} writes {stats['turn_taking_ratio']}x as much as you")

    streaks = stats["streaks"]
    print(f"\nLongest Streak: {streaks['longest']['length']} days")
    if streaks["current"]["is_active"]:
        print(f"Current Streak: {streaks['current']['length']} days")
    print(f"Total Active Days: {streaks['total_active_days']:,}")

    print(f"\nThank-yous: {stats['thank_you_count']:,} ({stats['thank_you_percentage']}%)")
    print(f"Apologies from {label}: {stats['apology_count']:,}")

    print("\nTime of Day:")
    for period in stats["time_of_day"]["periods"]:
        print(f"  {period['period']:<10} {period['count']:>7,}  {period['percentage']}%")

    if stats["top_sessions"]:
        print("\nTop Sessions by Messages:")
        for rank, session in enumerate(stats["top_sessions"], 1):
            print(f"  {rank:>2}. {session['name']} - {session['messages']:,} messages")

    image_usage = stats.get("image_usage")
    if image_usage:
        print(f"\nImages Generated: {image_usage['total_images']:,} "
              f"across {image_usage['sessions_with_images']:,} sessions")

    for key, heading in (("first_message", "How it Started"), ("latest_message", "How it's Going")):
        message = stats.get(key)
        if message:
            print(f"\n{heading} ({message['date']}):\n  {message['text']}")

    print(f"{'=' * 60}")
