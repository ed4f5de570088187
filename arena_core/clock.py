"""Contest phase derivation (pure, stateless).

The phase is a total function of (start, end, now):
- now < start            -> UPCOMING
- start <= now <= end    -> RUNNING (both boundary instants belong to RUNNING)
- now > end              -> FINISHED
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from .models import Contest, ContestPhase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_aware(value: datetime, name: str) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware")


def phase_at(start: datetime, end: datetime, now: datetime) -> ContestPhase:
    _require_aware(start, "start")
    _require_aware(end, "end")
    _require_aware(now, "now")
    if now < start:
        return ContestPhase.UPCOMING
    if now > end:
        return ContestPhase.FINISHED
    return ContestPhase.RUNNING


def phase(contest: Contest, now: datetime) -> ContestPhase:
    """Phase of ``contest`` at instant ``now``."""
    return phase_at(contest.start_time, contest.end_time, now)


def seconds_remaining(contest: Contest, now: datetime) -> int:
    """Whole seconds until the end of the contest, never negative."""
    _require_aware(now, "now")
    remaining = (contest.end_time - now).total_seconds()
    return max(0, math.floor(remaining))


def seconds_until_start(contest: Contest, now: datetime) -> int:
    _require_aware(now, "now")
    return max(0, math.floor((contest.start_time - now).total_seconds()))


def format_countdown(seconds: int) -> str:
    """Render a countdown as HH:MM:SS.

    Examples:
        - 3725 -> "01:02:05"
        - 0    -> "Contest ended"
    """
    if seconds <= 0:
        return "Contest ended"
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def group_by_phase(contests: Iterable[Contest], now: datetime) -> Dict[str, List[Contest]]:
    """Bucket contests for the listing page, each bucket ordered by start time."""
    groups: Dict[str, List[Contest]] = {
        ContestPhase.RUNNING.value: [],
        ContestPhase.UPCOMING.value: [],
        ContestPhase.FINISHED.value: [],
    }
    for contest in contests:
        groups[phase(contest, now).value].append(contest)
    for bucket in groups.values():
        bucket.sort(key=lambda c: (c.start_time, c.id))
    return groups


__all__ = [
    "utc_now",
    "phase",
    "phase_at",
    "seconds_remaining",
    "seconds_until_start",
    "format_countdown",
    "group_by_phase",
]
