"""
Pal Plant — Reminder planning and dispatch.

Planning is pure: given friends, meetings and ``now`` it lists the reminders
that are due, each with a dedup key (one per friend per day, one per meeting
slot). Dispatch is async because the NotificationPort is; it skips keys that
were already delivered and records the ones it sends.

Delivery itself (push, local notifications) lives behind NotificationPort.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from src.config import settings
from src.core.scoring import round_half_up
from src.core.time_status import compute_time_status
from src.data.models import Friend, MeetingRequest, MeetingStatus, to_iso

if TYPE_CHECKING:
    from src.data.db import FriendDB, MeetingDB, ReminderLogDB
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

_HOUR_SECONDS = 60 * 60


@dataclass(frozen=True)
class Reminder:
    key: str
    title: str
    body: str


def plan_reminders(
    friends: Iterable[Friend],
    meetings: Iterable[MeetingRequest],
    now: datetime,
    hours_before: int,
) -> list[Reminder]:
    """List every reminder that is due at ``now``.

    - a friend is due once their timer has run out (days_left <= 0),
    - a scheduled meeting is due within ``hours_before`` hours of its start.
    """
    today = now.astimezone(timezone.utc).date().isoformat()
    reminders: list[Reminder] = []

    for friend in friends:
        status = compute_time_status(friend.last_contacted, friend.frequency_days, now)
        if status.days_left <= 0:
            reminders.append(Reminder(
                key=f"friend_{friend.id}_{today}",
                title=f"{friend.name} needs a check-in",
                body=f"{friend.name} is overdue for a check-in.",
            ))

    window_end = now + timedelta(hours=hours_before)
    for meeting in meetings:
        if meeting.status != MeetingStatus.SCHEDULED or meeting.scheduled_date is None:
            continue
        if not (now < meeting.scheduled_date <= window_end):
            continue
        hours = (meeting.scheduled_date - now).total_seconds() / _HOUR_SECONDS
        reminders.append(Reminder(
            key=f"meeting_{meeting.id}_{to_iso(meeting.scheduled_date)}",
            title=f"Upcoming meeting with {meeting.name}",
            body=f"Starts in {max(1, round_half_up(hours))} hour(s).",
        ))

    return reminders


async def send_due_reminders(
    notifier: NotificationPort,
    friend_db: FriendDB,
    meeting_db: MeetingDB,
    reminder_db: ReminderLogDB,
    now: datetime,
    hours_before: int | None = None,
) -> int:
    """Deliver every due reminder that has not been sent yet.

    A failed send is logged and left unrecorded so the next run retries it.

    Returns:
        Number of reminders delivered.
    """
    if not settings.PUSH_ENABLED:
        logger.debug("Reminders disabled, skipping dispatch")
        return 0
    if hours_before is None:
        hours_before = settings.REMINDER_HOURS_BEFORE

    reminders = plan_reminders(friend_db.list_all(), meeting_db.list_all(), now, hours_before)
    sent = 0
    for reminder in reminders:
        if reminder_db.was_sent(reminder.key):
            continue
        try:
            await notifier.send_message(reminder.title, reminder.body)
        except Exception as exc:
            logger.error("Failed to send reminder %s: %s", reminder.key, exc)
            continue
        reminder_db.mark_sent(reminder.key, now)
        sent += 1

    logger.info("Reminders: %d due, %d sent", len(reminders), sent)
    return sent
