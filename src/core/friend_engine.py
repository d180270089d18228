"""
Pal Plant — Contact Action Engine.

One contact action is one transaction: read the friend's current timer,
adjust cadence, score the contact, append it to the history, re-derive the
score, update the quick-touch ledger and reset the timer. The input record
is never mutated; a new one is returned together with feedback for the UI.

Nothing in here raises in normal use. A QUICK action without a token is a
no-op that hands back the very same record with ``changed=False``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from src.core.cadence import check_cadence_shortening
from src.core.scoring import calculate_individual_score, calculate_interaction_score
from src.core.time_status import compute_time_status
from src.core.tokens import consume_quick_touch, record_full_cycle
from src.core.validation import (
    FriendValidationError,
    is_valid_email,
    parse_birthday,
    sanitize_phone,
    validate_frequency,
    validate_name,
)
from src.data.models import ContactChannel, ContactLog, ContactType, Friend

logger = logging.getLogger(__name__)

QUICK_TOUCH_EXTENSION = timedelta(minutes=30)
DEEP_CONNECTION_BONUS = timedelta(hours=12)


@dataclass(frozen=True)
class ActionFeedback:
    """What one contact action did, for inline display."""

    type: ContactType
    score_delta: int
    new_score: int
    cadence_shortened: bool
    timer_effect: str          # e.g. "reset to 14d", "reset to 7d + 12h", "+30 min"
    token_change: int          # -1 consumed, 0 unchanged, +1 earned
    tokens_available: int
    timestamp: datetime
    old_frequency_days: int | None = None
    new_frequency_days: int | None = None


@dataclass(frozen=True)
class ContactActionResult:
    friend: Friend
    changed: bool
    cadence_shortened: bool
    feedback: ActionFeedback


def generate_id() -> str:
    return uuid.uuid4().hex[:8]


def create_friend(
    name: str,
    category: str,
    frequency_days: int,
    now: datetime,
    friend_id: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    photo: str | None = None,
    notes: str | None = None,
    birthday: str | None = None,
) -> Friend:
    """Build a new friend with default scoring state.

    Raises FriendValidationError on an empty name, bad cadence, email or
    birthday.
    """
    if not is_valid_email(email):
        raise FriendValidationError(f"Invalid email: {email!r}")
    if birthday and parse_birthday(birthday) is None:
        raise FriendValidationError(f"Invalid birthday: {birthday!r} (expected MM-DD)")

    return Friend(
        id=friend_id or generate_id(),
        name=validate_name(name),
        category=(category or "").strip() or "Friends",
        frequency_days=validate_frequency(frequency_days),
        last_contacted=now,
        phone=sanitize_phone(phone) if phone else None,
        email=email.strip() if email else None,
        photo=photo,
        notes=notes,
        birthday=birthday,
    )


def process_contact(
    friend: Friend,
    contact_type: ContactType,
    now: datetime,
    channel: ContactChannel | None = None,
    log_id: str | None = None,
) -> ContactActionResult:
    """Apply one contact action to a friend.

    Args:
        friend: Current record (left untouched).
        contact_type: REGULAR, DEEP or QUICK.
        now: The instant of the contact.
        channel: Optional communication channel, stored on the log.
        log_id: Optional id for the new log entry (generated otherwise).

    Returns:
        ContactActionResult with the new record and its feedback.
    """
    status = compute_time_status(friend.last_contacted, friend.frequency_days, now)

    if contact_type == ContactType.QUICK:
        return _process_quick_touch(friend, status.percentage_left, now, channel, log_id)

    new_frequency, cadence_shortened = check_cadence_shortening(
        friend, contact_type, status.percentage_left,
    )

    # Scored against the timer as it stood before any shortening.
    days_overdue = -status.days_left if status.days_left < 0 else 0
    score_delta = calculate_interaction_score(contact_type, status.percentage_left, days_overdue)

    new_log = ContactLog(
        id=log_id or generate_id(),
        date=now,
        type=contact_type,
        days_wait_goal=new_frequency,
        percentage_remaining=status.percentage_left,
        score_delta=score_delta,
        channel=channel,
    )
    new_logs = (new_log, *friend.logs)
    new_score = calculate_individual_score(new_logs)

    last_deep = friend.last_deep_connection
    extra_wait = timedelta(0)
    if contact_type == ContactType.DEEP:
        last_deep = now
        extra_wait = DEEP_CONNECTION_BONUS

    ledger = record_full_cycle(
        friend.quick_touches_available, friend.cycles_since_last_quick_touch,
    )

    if contact_type == ContactType.DEEP:
        timer_effect = f"reset to {new_frequency}d + 12h"
    else:
        timer_effect = f"reset to {new_frequency}d"

    updated = replace(
        friend,
        frequency_days=new_frequency,
        last_contacted=now + extra_wait,
        logs=new_logs,
        individual_score=new_score,
        last_deep_connection=last_deep,
        cycles_since_last_quick_touch=ledger.cycles,
        quick_touches_available=ledger.tokens,
    )
    feedback = ActionFeedback(
        type=contact_type,
        score_delta=score_delta,
        new_score=new_score,
        cadence_shortened=cadence_shortened,
        old_frequency_days=friend.frequency_days if cadence_shortened else None,
        new_frequency_days=new_frequency if cadence_shortened else None,
        timer_effect=timer_effect,
        token_change=ledger.change,
        tokens_available=ledger.tokens,
        timestamp=now,
    )
    logger.debug(
        "%s contact with %s: %+d -> score %d",
        contact_type.value, friend.id, score_delta, new_score,
    )
    return ContactActionResult(
        friend=updated,
        changed=True,
        cadence_shortened=cadence_shortened,
        feedback=feedback,
    )


def _process_quick_touch(
    friend: Friend,
    percentage_left: float,
    now: datetime,
    channel: ContactChannel | None,
    log_id: str | None,
) -> ContactActionResult:
    """Spend a token: +2 points and a flat 30 minute timer extension."""
    new_tokens = consume_quick_touch(friend.quick_touches_available)
    if new_tokens is None:
        logger.debug("Quick touch for %s rejected: no tokens", friend.id)
        return ContactActionResult(
            friend=friend,
            changed=False,
            cadence_shortened=False,
            feedback=ActionFeedback(
                type=ContactType.QUICK,
                score_delta=0,
                new_score=friend.individual_score,
                cadence_shortened=False,
                timer_effect="No tokens available",
                token_change=0,
                tokens_available=0,
                timestamp=now,
            ),
        )

    score_delta = calculate_interaction_score(ContactType.QUICK, percentage_left, 0)
    new_log = ContactLog(
        id=log_id or generate_id(),
        date=now,
        type=ContactType.QUICK,
        days_wait_goal=friend.frequency_days,
        percentage_remaining=percentage_left,
        score_delta=score_delta,
        channel=channel,
    )
    new_logs = (new_log, *friend.logs)
    new_score = calculate_individual_score(new_logs)

    updated = replace(
        friend,
        last_contacted=friend.last_contacted + QUICK_TOUCH_EXTENSION,
        quick_touches_available=new_tokens,
        logs=new_logs,
        individual_score=new_score,
    )
    return ContactActionResult(
        friend=updated,
        changed=True,
        cadence_shortened=False,
        feedback=ActionFeedback(
            type=ContactType.QUICK,
            score_delta=score_delta,
            new_score=new_score,
            cadence_shortened=False,
            timer_effect="+30 min",
            token_change=-1,
            tokens_available=new_tokens,
            timestamp=now,
        ),
    )


def remove_log(friend: Friend, log_id: str) -> Friend:
    """Drop one history entry and re-derive score and last contact.

    ``last_contacted`` moves to the newest surviving log (by timestamp), or
    stays as it is when no logs are left. Removing an unknown id is a no-op
    on the history.
    """
    remaining = tuple(log for log in friend.logs if log.id != log_id)
    newest = max(remaining, key=lambda log: log.date, default=None)

    return replace(
        friend,
        logs=remaining,
        last_contacted=newest.date if newest is not None else friend.last_contacted,
        individual_score=calculate_individual_score(remaining),
    )
