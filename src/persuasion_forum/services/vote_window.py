"""Vote deadline classification.

Every function here is a pure function of a deadline and the current time.
Nothing is stored, so callers that need stable answers (tests, a single API
response) should pass ``now`` explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from persuasion_forum.core.settings import settings
from persuasion_forum.db.time import utcnow

PERSUASION_WINDOW = timedelta(hours=1)

DeadlineLike = datetime | str | None


@dataclass(frozen=True)
class TimeRemaining:
    """Whole units left before a deadline."""

    expired: bool
    days: int = 0
    hours: int = 0
    minutes: int = 0


@dataclass(frozen=True)
class VoteWindowState:
    """Snapshot of a post's voting phase at one instant."""

    persuasion_time: bool
    voting_expired: bool
    time_remaining: TimeRemaining | None


def parse_deadline(value: DeadlineLike) -> datetime | None:
    """Normalise a deadline to an aware UTC datetime.

    Accepts None, a datetime, or an ISO-8601 string (a trailing ``Z`` is
    allowed). Naive values are taken to be UTC.

    Raises:
        ValueError: If a string cannot be parsed as ISO-8601.
    """
    if value is None or value == "":
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def configured_window() -> timedelta:
    """Return the persuasion window length configured for this deployment."""
    return timedelta(minutes=settings.persuasion_window_minutes)


def _now(now: datetime | None) -> datetime:
    if now is None:
        return utcnow()
    return parse_deadline(now)  # type: ignore[return-value]


def is_voting_expired(deadline: DeadlineLike, now: datetime | None = None) -> bool:
    """Return True once ``now`` is strictly past the deadline."""
    parsed = parse_deadline(deadline)
    if parsed is None:
        return False
    return _now(now) > parsed


def is_persuasion_time(
    deadline: DeadlineLike,
    now: datetime | None = None,
    window: timedelta = PERSUASION_WINDOW,
) -> bool:
    """Return True during the final ``window`` before the deadline.

    The window is half-open: it starts exactly ``window`` before the deadline
    and ends at the deadline itself.
    """
    parsed = parse_deadline(deadline)
    if parsed is None:
        return False
    current = _now(now)
    return parsed - window <= current < parsed


def get_time_remaining(deadline: DeadlineLike, now: datetime | None = None) -> TimeRemaining | None:
    """Return the whole days, hours and minutes left, or None without a deadline."""
    parsed = parse_deadline(deadline)
    if parsed is None:
        return None

    diff = parsed - _now(now)
    if diff < timedelta(0):
        return TimeRemaining(expired=True)

    total_minutes = int(diff.total_seconds() // 60)
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    return TimeRemaining(expired=False, days=days, hours=hours, minutes=minutes)


def vote_window_state(
    deadline: DeadlineLike,
    now: datetime | None = None,
    window: timedelta = PERSUASION_WINDOW,
) -> VoteWindowState:
    """Classify a deadline against a single instant."""
    current = _now(now)
    return VoteWindowState(
        persuasion_time=is_persuasion_time(deadline, current, window),
        voting_expired=is_voting_expired(deadline, current),
        time_remaining=get_time_remaining(deadline, current),
    )
