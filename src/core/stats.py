"""Garden statistics: per-category cohorts, contact streaks, birthdays."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from src.core.scoring import round_half_up
from src.core.time_status import compute_time_status
from src.core.validation import parse_birthday
from src.data.models import Friend


@dataclass(frozen=True)
class CohortStats:
    count: int
    avg_score: int
    total_interactions: int
    overdue_count: int


@dataclass
class _CohortTotals:
    count: int = 0
    total_score: int = 0
    total_interactions: int = 0
    overdue_count: int = 0


@dataclass(frozen=True)
class StreakSummary:
    current_streak: int
    longest_streak: int
    streak_dates: list[str] = field(default_factory=list)   # ISO dates, oldest first


def get_cohort_stats(friends: Iterable[Friend], now: datetime) -> dict[str, CohortStats]:
    """Group friends by category in one pass and summarise each group."""
    totals: dict[str, _CohortTotals] = {}

    for friend in friends:
        cohort = totals.setdefault(friend.category, _CohortTotals())
        cohort.count += 1
        cohort.total_score += friend.individual_score
        cohort.total_interactions += len(friend.logs)
        if compute_time_status(friend.last_contacted, friend.frequency_days, now).is_overdue:
            cohort.overdue_count += 1

    return {
        category: CohortStats(
            count=t.count,
            avg_score=round_half_up(t.total_score / t.count),
            total_interactions=t.total_interactions,
            overdue_count=t.overdue_count,
        )
        for category, t in totals.items()
    }


def _utc_day(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


def calculate_streaks(friends: Iterable[Friend], today: date) -> StreakSummary:
    """Consecutive UTC days with at least one logged contact.

    The current streak only counts if the last contact day is today or
    yesterday.
    """
    days = sorted({_utc_day(log.date) for friend in friends for log in friend.logs})
    if not days:
        return StreakSummary(current_streak=0, longest_streak=0, streak_dates=[])

    longest = 1
    run = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    current_dates: list[str] = []
    if days[-1] in (today, today - timedelta(days=1)):
        expected = days[-1]
        for day in reversed(days):
            if day != expected:
                break
            current_dates.insert(0, day.isoformat())
            expected -= timedelta(days=1)

    return StreakSummary(
        current_streak=len(current_dates),
        longest_streak=longest,
        streak_dates=current_dates,
    )


def _next_birthday(month: int, day: int, today: date) -> date | None:
    for year in (today.year, today.year + 1):
        try:
            candidate = date(year, month, day)
        except ValueError:
            if (month, day) != (2, 29):
                return None
            candidate = date(year, 3, 1)
        if candidate >= today:
            return candidate
    return None


def get_upcoming_birthdays(
    friends: Iterable[Friend],
    today: date,
    window_days: int = 30,
) -> list[tuple[Friend, date]]:
    """Friends with a birthday in the next ``window_days`` days, soonest first."""
    upcoming: list[tuple[Friend, date]] = []
    for friend in friends:
        if not friend.birthday:
            continue
        parsed = parse_birthday(friend.birthday)
        if parsed is None:
            continue
        next_day = _next_birthday(*parsed, today)
        if next_day is not None and (next_day - today).days <= window_days:
            upcoming.append((friend, next_day))

    upcoming.sort(key=lambda pair: pair[1])
    return upcoming
