"""Cadence adjustment — pure business logic.

Two separate mechanisms watch for a cadence that does not match how the user
actually keeps in touch:

- automatic shortening, applied inside a REGULAR contact when the user
  reached out early twice in a row (looks one log back only),
- smart nudges, advisory suggestions computed over the five most recent
  logs. Nudges are never applied here; ``apply_cadence_change`` is the
  separate, caller-initiated step.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, replace

from src.core.scoring import TOO_EARLY_THRESHOLD, round_half_up
from src.data.models import ContactType, Friend

logger = logging.getLogger(__name__)

MIN_FREQUENCY_DAYS = 1

NUDGE_WINDOW = 5
NUDGE_MIN_LOGS = 3
NUDGE_PATTERN_RATIO = 0.6
NUDGE_SHORTEN_FACTOR = 0.6
NUDGE_EXTEND_FACTOR = 1.5
NUDGE_MIN_DAYS = 2
NUDGE_MAX_DAYS = 90


@dataclass(frozen=True)
class SmartNudge:
    """An advisory cadence change for one friend."""

    friend_id: str
    friend_name: str
    type: str              # "shorten" | "extend"
    current_days: int
    suggested_days: int
    reason: str


def check_cadence_shortening(
    friend: Friend,
    contact_type: ContactType,
    percentage_left: float,
) -> tuple[int, bool]:
    """Halve the cadence after two consecutive early contacts.

    Must be called before the new log is prepended: the "previous" contact
    is ``friend.logs[0]``.

    Returns:
        (frequency_days, shortened). ``shortened`` is only true when the
        frequency actually changed, so a 1-day cadence never reports it.
    """
    if contact_type != ContactType.REGULAR or percentage_left <= TOO_EARLY_THRESHOLD:
        return friend.frequency_days, False
    if not friend.logs or friend.logs[0].percentage_remaining <= TOO_EARLY_THRESHOLD:
        return friend.frequency_days, False

    new_days = max(MIN_FREQUENCY_DAYS, friend.frequency_days // 2)
    shortened = new_days != friend.frequency_days
    if shortened:
        logger.debug(
            "Cadence for %s shortened %d -> %d days",
            friend.id, friend.frequency_days, new_days,
        )
    return new_days, shortened


def get_smart_nudges(friends: Iterable[Friend]) -> list[SmartNudge]:
    """Suggest cadence changes from recent contact timing.

    Looks at each friend's 5 newest logs (at least 3 needed):
    - 60%+ early (>80% left) and cadence > 2: shorten to 60%, min 2 days
    - 60%+ overdue (<0% left) and cadence < 90: extend by 50%, max 90 days
    A suggestion is only made if it actually moves the cadence.
    """
    nudges: list[SmartNudge] = []

    for friend in friends:
        recent = friend.logs[:NUDGE_WINDOW]
        if len(recent) < NUDGE_MIN_LOGS:
            continue

        needed = math.ceil(len(recent) * NUDGE_PATTERN_RATIO)
        early_count = sum(1 for log in recent if log.percentage_remaining > TOO_EARLY_THRESHOLD)
        overdue_count = sum(1 for log in recent if log.percentage_remaining < 0)
        current = friend.frequency_days

        if early_count >= needed and current > NUDGE_MIN_DAYS:
            suggested = max(NUDGE_MIN_DAYS, round_half_up(current * NUDGE_SHORTEN_FACTOR))
            if suggested < current:
                nudges.append(SmartNudge(
                    friend_id=friend.id,
                    friend_name=friend.name,
                    type="shorten",
                    current_days=current,
                    suggested_days=suggested,
                    reason=(
                        "You consistently reach out early. "
                        f"A {suggested}-day cadence may fit better."
                    ),
                ))

        if overdue_count >= needed and current < NUDGE_MAX_DAYS:
            suggested = min(NUDGE_MAX_DAYS, round_half_up(current * NUDGE_EXTEND_FACTOR))
            if suggested > current:
                nudges.append(SmartNudge(
                    friend_id=friend.id,
                    friend_name=friend.name,
                    type="extend",
                    current_days=current,
                    suggested_days=suggested,
                    reason=(
                        "This cadence seems hard to maintain. "
                        f"Try {suggested} days for a more realistic rhythm."
                    ),
                ))

    return nudges


def apply_cadence_change(friend: Friend, frequency_days: int) -> Friend:
    """Return a copy of ``friend`` with a new cadence (never below 1 day)."""
    return replace(friend, frequency_days=max(MIN_FREQUENCY_DAYS, int(frequency_days)))
