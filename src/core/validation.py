"""Input validation and sanitisation for friend records.

The engine assumes well-formed input; this is where the edge (service,
CLI, JSON import) makes sure of it.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from src.core.scoring import MAX_SCORE, MIN_SCORE

if TYPE_CHECKING:
    from src.data.models import Friend

_PHONE_INVALID = re.compile(r"[^0-9+\-() .ext]", re.IGNORECASE)
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_BIRTHDAY = re.compile(r"^(\d{2})-(\d{2})$")

MAX_NAME_LENGTH = 200
MAX_PHONE_LENGTH = 30


class FriendValidationError(ValueError):
    """Raised when friend input cannot be accepted."""


def sanitize_text(text: str, max_length: int = MAX_NAME_LENGTH) -> str:
    return text.strip()[:max_length]


def sanitize_phone(phone: str) -> str:
    """Keep digits, +, -, (), ., spaces and "ext"; max 30 chars."""
    return _PHONE_INVALID.sub("", phone).strip()[:MAX_PHONE_LENGTH]


def is_valid_email(email: str | None) -> bool:
    """Empty is valid: email is optional."""
    if not email:
        return True
    return bool(_EMAIL.match(email))


def parse_birthday(birthday: str) -> tuple[int, int] | None:
    """Parse an ``MM-DD`` birthday into (month, day), or None if malformed."""
    match = _BIRTHDAY.match(birthday.strip())
    if not match:
        return None
    month, day = int(match.group(1)), int(match.group(2))
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return month, day


def validate_frequency(frequency_days: int) -> int:
    try:
        value = int(frequency_days)
    except (TypeError, ValueError) as exc:
        raise FriendValidationError(f"Invalid frequency: {frequency_days!r}") from exc
    if value < 1:
        raise FriendValidationError(f"Frequency must be at least 1 day, got {value}")
    return value


def validate_name(name: str) -> str:
    cleaned = sanitize_text(name or "")
    if not cleaned:
        raise FriendValidationError("Name must not be empty")
    return cleaned


def validate_friend(friend: Friend) -> Friend:
    """Check a record that did not come from ``create_friend`` (e.g. a backup).

    Raises FriendValidationError on the first field that breaks the record
    invariants; the record itself is returned unchanged.
    """
    validate_name(friend.name)
    validate_frequency(friend.frequency_days)
    if not MIN_SCORE <= friend.individual_score <= MAX_SCORE:
        raise FriendValidationError(
            f"Score for {friend.id} must be {MIN_SCORE}-{MAX_SCORE}, got {friend.individual_score}"
        )
    if friend.quick_touches_available < 0 or friend.cycles_since_last_quick_touch < 0:
        raise FriendValidationError(f"Negative quick-touch counters for {friend.id}")
    if not is_valid_email(friend.email):
        raise FriendValidationError(f"Invalid email: {friend.email!r}")
    if friend.birthday and parse_birthday(friend.birthday) is None:
        raise FriendValidationError(f"Invalid birthday: {friend.birthday!r} (expected MM-DD)")
    return friend
