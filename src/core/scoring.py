"""Relationship scoring — pure business logic.

Three levels of score:

- interaction score: the point delta one contact earns,
- individual score: a friend's 0..100 health, re-derived from the full log,
- garden score: the global 0..100 wellness number across all friends,
  nudged by meeting outcomes.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from src.data.models import ContactLog, ContactType, Friend, MeetingRequest, MeetingStatus

NEUTRAL_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

QUICK_TOUCH_POINTS = 2
DEEP_CONNECTION_POINTS = 15
OVERDUE_POINTS_PER_DAY = -5
OVERDUE_PENALTY_FLOOR = -30
TOO_EARLY_POINTS = -2
SWEET_SPOT_POINTS = 10
ON_TIME_POINTS = 5

TOO_EARLY_THRESHOLD = 80      # percentage left
SWEET_SPOT_THRESHOLD = 50     # percentage left

VERIFIED_MEETING_BONUS = 5
STALE_REQUEST_PENALTY = -2
STALE_REQUEST_DAYS = 14

_DAY_SECONDS = 24 * 60 * 60


def round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3, -2.5 -> -2) instead of to even."""
    return math.floor(value + 0.5)


def clamp_score(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def calculate_interaction_score(
    contact_type: ContactType,
    percentage_remaining: float,
    days_overdue: int,
) -> int:
    """Point delta for a single interaction.

    - QUICK: +2
    - DEEP: +15
    - REGULAR:
        - overdue: -5 per day overdue, floored at -30
        - too early (>80% left): -2
        - sweet spot (<=50% left): +10
        - otherwise (50-80% left): +5
    """
    if contact_type == ContactType.QUICK:
        return QUICK_TOUCH_POINTS
    if contact_type == ContactType.DEEP:
        return DEEP_CONNECTION_POINTS

    if days_overdue > 0:
        return max(OVERDUE_PENALTY_FLOOR, OVERDUE_POINTS_PER_DAY * days_overdue)
    if percentage_remaining > TOO_EARLY_THRESHOLD:
        return TOO_EARLY_POINTS
    if percentage_remaining <= SWEET_SPOT_THRESHOLD:
        return SWEET_SPOT_POINTS
    return ON_TIME_POINTS


def calculate_individual_score(logs: Iterable[ContactLog]) -> int:
    """Re-derive a friend's score from their whole history.

    Starts at 50, adds every log's delta, clamps to 0..100.
    """
    total = NEUTRAL_SCORE + sum(log.score_delta for log in logs)
    return int(clamp_score(total))


def get_meeting_urgency(date_added: datetime, now: datetime) -> tuple[int, float]:
    """How long a meeting request has been waiting.

    Returns:
        (days_passed, ratio) where days_passed is floored and ratio goes
        from 0 to 1 over STALE_REQUEST_DAYS.
    """
    days_passed = (now - date_added).total_seconds() / _DAY_SECONDS
    ratio = min(days_passed / STALE_REQUEST_DAYS, 1.0)
    return math.floor(days_passed), ratio


def _meeting_adjustment(meeting: MeetingRequest, now: datetime) -> int:
    if meeting.status == MeetingStatus.COMPLETE and meeting.verified:
        return VERIFIED_MEETING_BONUS
    if meeting.status == MeetingStatus.REQUESTED:
        if now - meeting.date_added > timedelta(days=STALE_REQUEST_DAYS):
            return STALE_REQUEST_PENALTY
    return 0


def calculate_garden_score(
    friends: Sequence[Friend],
    meetings: Iterable[MeetingRequest],
    now: datetime,
) -> int:
    """Global garden score across all friends.

    1. Average the individual friend scores.
    2. Sum meeting bonuses/penalties and spread them over the friend count.
    3. Clamp to 0..100 and round.

    An empty friend list always scores 0, whatever the meetings say.
    """
    if not friends:
        return 0

    avg_friend_score = sum(f.individual_score for f in friends) / len(friends)
    meeting_score = sum(_meeting_adjustment(m, now) for m in meetings)

    return round_half_up(clamp_score(avg_friend_score + meeting_score / max(1, len(friends))))
