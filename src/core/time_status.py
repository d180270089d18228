"""Contact timer status — pure business logic.

Turns a friend's last-contact timestamp and cadence into a freshness
percentage ("battery left") and a signed day count.

No I/O: this module only transforms data. ``now`` is always passed in.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class TimeStatus:
    """Freshness of one relationship at a given instant."""

    percentage_left: float     # unclamped: >100 if now < last_contacted, <0 if overdue
    days_left: int             # negative = overdue by |days_left| days
    is_overdue: bool
    goal_date: datetime


def compute_time_status(
    last_contacted: datetime,
    frequency_days: float,
    now: datetime,
) -> TimeStatus:
    """Compute the timer status of a relationship.

    Args:
        last_contacted: Anchor of the current contact interval.
        frequency_days: Target interval in days, must be >= 1.
        now: The current instant.

    Returns:
        TimeStatus with the raw (unclamped) percentage left.
    """
    assert frequency_days >= 1, f"frequency_days must be >= 1, got {frequency_days}"

    goal_date = last_contacted + timedelta(days=frequency_days)
    total_span = (goal_date - last_contacted).total_seconds()
    remaining = (goal_date - now).total_seconds()

    return TimeStatus(
        percentage_left=remaining / total_span * 100,
        days_left=math.ceil(remaining / _DAY_SECONDS),
        is_overdue=remaining < 0,
        goal_date=goal_date,
    )
