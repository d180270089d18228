"""
Pal Plant — Data Models.

Friends, their contact history and meeting requests. Records are immutable:
every engine operation hands back a new record built with
``dataclasses.replace`` and the caller swaps it into its collection.

The ``*_to_dict`` / ``*_from_dict`` helpers speak the camelCase JSON shape
used by backups and fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ContactType(str, Enum):
    REGULAR = "REGULAR"
    DEEP = "DEEP"
    QUICK = "QUICK"


class ContactChannel(str, Enum):
    CALL = "call"
    TEXT = "text"
    VIDEO = "video"
    IN_PERSON = "in-person"
    OTHER = "other"


class MeetingStatus(str, Enum):
    REQUESTED = "REQUESTED"
    SCHEDULED = "SCHEDULED"
    COMPLETE = "COMPLETE"


@dataclass(frozen=True)
class ContactLog:
    """One logged interaction with a friend."""

    id: str
    date: datetime
    type: ContactType
    days_wait_goal: int               # frequency in effect when logged
    percentage_remaining: float       # freshness at contact time, signed
    score_delta: int = 0
    channel: ContactChannel | None = None


@dataclass(frozen=True)
class Friend:
    """A tracked relationship.

    ``logs`` is newest-first by insertion order. Optional descriptive fields
    are carried through the engine untouched.
    """

    id: str
    name: str
    category: str
    frequency_days: int
    last_contacted: datetime
    individual_score: int = 50
    quick_touches_available: int = 0
    cycles_since_last_quick_touch: int = 0
    last_deep_connection: datetime | None = None
    logs: tuple[ContactLog, ...] = field(default_factory=tuple)
    phone: str | None = None
    email: str | None = None
    photo: str | None = None
    notes: str | None = None
    birthday: str | None = None       # MM-DD
    avatar_seed: int | None = None


@dataclass(frozen=True)
class MeetingRequest:
    """A request to meet someone, tracked until it is complete."""

    id: str
    name: str
    status: MeetingStatus
    date_added: datetime
    verified: bool | None = None
    scheduled_date: datetime | None = None
    location: str | None = None
    organization: str | None = None
    phone: str | None = None
    email: str | None = None
    photo: str | None = None
    notes: str | None = None
    category: str | None = None
    linked_friend_id: str | None = None


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def to_iso(value: datetime) -> str:
    """Format as UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_iso(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a trailing ``Z`` or an explicit offset; naive values are UTC.
    Raises ValueError on malformed input.
    """
    if not isinstance(raw, str) or not raw:
        raise ValueError(f"Invalid timestamp: {raw!r}")
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def optional_iso(value: datetime | None) -> str | None:
    return to_iso(value) if value is not None else None


def optional_parse_iso(raw: str | None) -> datetime | None:
    return parse_iso(raw) if raw else None


# ---------------------------------------------------------------------------
# JSON codec
# ---------------------------------------------------------------------------


def log_to_dict(log: ContactLog) -> dict:
    data = {
        "id": log.id,
        "date": to_iso(log.date),
        "type": log.type.value,
        "daysWaitGoal": log.days_wait_goal,
        "percentageRemaining": log.percentage_remaining,
        "scoreDelta": log.score_delta,
    }
    if log.channel is not None:
        data["channel"] = log.channel.value
    return data


def log_from_dict(data: dict) -> ContactLog:
    channel = data.get("channel")
    return ContactLog(
        id=str(data["id"]),
        date=parse_iso(data["date"]),
        type=ContactType(data["type"]),
        days_wait_goal=int(data.get("daysWaitGoal", 0)),
        percentage_remaining=float(data.get("percentageRemaining", 0)),
        score_delta=int(data.get("scoreDelta") or 0),
        channel=ContactChannel(channel) if channel else None,
    )


_FRIEND_OPTIONAL = ("phone", "email", "photo", "notes", "birthday")


def friend_to_dict(friend: Friend) -> dict:
    data = {
        "id": friend.id,
        "name": friend.name,
        "category": friend.category,
        "frequencyDays": friend.frequency_days,
        "lastContacted": to_iso(friend.last_contacted),
        "individualScore": friend.individual_score,
        "quickTouchesAvailable": friend.quick_touches_available,
        "cyclesSinceLastQuickTouch": friend.cycles_since_last_quick_touch,
        "logs": [log_to_dict(log) for log in friend.logs],
    }
    if friend.last_deep_connection is not None:
        data["lastDeepConnection"] = to_iso(friend.last_deep_connection)
    for key in _FRIEND_OPTIONAL:
        value = getattr(friend, key)
        if value is not None:
            data[key] = value
    if friend.avatar_seed is not None:
        data["avatarSeed"] = friend.avatar_seed
    return data


def friend_from_dict(data: dict) -> Friend:
    score = data.get("individualScore")
    return Friend(
        id=str(data["id"]),
        name=data["name"],
        category=data.get("category", ""),
        frequency_days=int(data["frequencyDays"]),
        last_contacted=parse_iso(data["lastContacted"]),
        individual_score=int(score) if score is not None else 50,
        quick_touches_available=int(data.get("quickTouchesAvailable") or 0),
        cycles_since_last_quick_touch=int(data.get("cyclesSinceLastQuickTouch") or 0),
        last_deep_connection=optional_parse_iso(data.get("lastDeepConnection")),
        logs=tuple(log_from_dict(entry) for entry in data.get("logs", [])),
        phone=data.get("phone"),
        email=data.get("email"),
        photo=data.get("photo"),
        notes=data.get("notes"),
        birthday=data.get("birthday"),
        avatar_seed=data.get("avatarSeed"),
    )


_MEETING_OPTIONAL = (
    ("location", "location"),
    ("organization", "organization"),
    ("phone", "phone"),
    ("email", "email"),
    ("photo", "photo"),
    ("notes", "notes"),
    ("category", "category"),
    ("linked_friend_id", "linkedFriendId"),
)


def meeting_to_dict(meeting: MeetingRequest) -> dict:
    data = {
        "id": meeting.id,
        "name": meeting.name,
        "status": meeting.status.value,
        "dateAdded": to_iso(meeting.date_added),
    }
    if meeting.verified is not None:
        data["verified"] = meeting.verified
    if meeting.scheduled_date is not None:
        data["scheduledDate"] = to_iso(meeting.scheduled_date)
    for attr, key in _MEETING_OPTIONAL:
        value = getattr(meeting, attr)
        if value is not None:
            data[key] = value
    return data


def meeting_from_dict(data: dict) -> MeetingRequest:
    verified = data.get("verified")
    return MeetingRequest(
        id=str(data["id"]),
        name=data["name"],
        status=MeetingStatus(data["status"]),
        date_added=parse_iso(data["dateAdded"]),
        verified=bool(verified) if verified is not None else None,
        scheduled_date=optional_parse_iso(data.get("scheduledDate")),
        **{attr: data.get(key) for attr, key in _MEETING_OPTIONAL},
    )
