"""
Pal Plant — UI-Agnostic Friend Service.

Stateless service layer that orchestrates one user action end to end:
load record -> run the scoring engine -> persist the new record -> return a
structured response object.

Each UI (CLI, app shell) calls this service and renders the response objects
in its own way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from src.core.cadence import SmartNudge, apply_cadence_change, get_smart_nudges
from src.core.friend_engine import (
    ActionFeedback,
    create_friend,
    generate_id,
    process_contact,
    remove_log,
)
from src.core.scoring import calculate_garden_score
from src.core.stats import CohortStats, get_cohort_stats
from src.core.time_status import TimeStatus, compute_time_status
from src.core.validation import validate_frequency, validate_name
from src.data.models import ContactChannel, ContactType, Friend, MeetingRequest, MeetingStatus

if TYPE_CHECKING:
    from src.data.db import FriendDB, MeetingDB

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    NO_ACTION = "no_action"
    QUERY_RESULT = "query_result"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class SuccessResponse(ServiceResponse):
    friend: Friend | None = None
    feedback: ActionFeedback | None = None


@dataclass
class ErrorResponse(ServiceResponse):
    pass


@dataclass
class NoActionResponse(ServiceResponse):
    feedback: ActionFeedback | None = None


@dataclass
class FriendStatus:
    friend: Friend
    status: TimeStatus


@dataclass
class OverviewResponse(ServiceResponse):
    garden_score: int = 0
    friends: list[FriendStatus] = field(default_factory=list)
    cohorts: dict[str, CohortStats] = field(default_factory=dict)
    nudges: list[SmartNudge] = field(default_factory=list)


# ---------------------------------------------------------------------------
# FriendService
# ---------------------------------------------------------------------------


class FriendService:
    """Stateless service over the friend and meeting stores.

    Returns structured response objects — never prints or notifies directly.
    """

    def __init__(self, friend_db: FriendDB, meeting_db: MeetingDB) -> None:
        self._friend_db = friend_db
        self._meeting_db = meeting_db

    # ------------------------------------------------------------------
    # Friends
    # ------------------------------------------------------------------

    def add_friend(
        self,
        name: str,
        category: str,
        frequency_days: int,
        now: datetime,
        **details: str | None,
    ) -> ServiceResponse:
        """Validate and store a new friend with default scoring state."""
        try:
            friend = create_friend(name, category, frequency_days, now, **details)
            self._friend_db.add_friend(friend)
        except ValueError as exc:
            logger.warning("Could not add friend '%s': %s", name, exc)
            return ErrorResponse(kind=ResponseKind.ERROR, message=str(exc))

        return SuccessResponse(
            kind=ResponseKind.SUCCESS,
            message=f"Added {friend.name}: check in every {friend.frequency_days} days.",
            friend=friend,
        )

    def log_contact(
        self,
        friend_id: str,
        contact_type: ContactType,
        now: datetime,
        channel: ContactChannel | None = None,
    ) -> ServiceResponse:
        """Run one contact action and persist the result.

        A QUICK action without a token leaves the store untouched and comes
        back as a NoActionResponse.
        """
        try:
            friend = self._friend_db.require_friend(friend_id)
        except ValueError as exc:
            return ErrorResponse(kind=ResponseKind.ERROR, message=str(exc))

        result = process_contact(friend, contact_type, now, channel)
        if not result.changed:
            return NoActionResponse(
                kind=ResponseKind.NO_ACTION,
                message=(
                    f"No quick touches available for {friend.name}. "
                    "Keep up regular check-ins to earn one."
                ),
                feedback=result.feedback,
            )

        self._friend_db.save_friend(result.friend)
        logger.info(
            "%s contact logged for %s (%+d, score %d)",
            contact_type.value, friend_id, result.feedback.score_delta,
            result.feedback.new_score,
        )
        return SuccessResponse(
            kind=ResponseKind.SUCCESS,
            message=_describe_feedback(result.friend, result.feedback),
            friend=result.friend,
            feedback=result.feedback,
        )

    def delete_log(self, friend_id: str, log_id: str) -> ServiceResponse:
        """Remove one history entry and persist the recomputed record."""
        try:
            friend = self._friend_db.require_friend(friend_id)
        except ValueError as exc:
            return ErrorResponse(kind=ResponseKind.ERROR, message=str(exc))

        updated = remove_log(friend, log_id)
        if len(updated.logs) == len(friend.logs):
            return NoActionResponse(
                kind=ResponseKind.NO_ACTION,
                message=f"No log {log_id} for {friend.name}.",
            )

        self._friend_db.save_friend(updated)
        return SuccessResponse(
            kind=ResponseKind.SUCCESS,
            message=f"Removed log {log_id}. {friend.name} is now at {updated.individual_score}.",
            friend=updated,
        )

    def update_cadence(self, friend_id: str, frequency_days: int) -> ServiceResponse:
        """Explicit cadence edit by the user."""
        try:
            days = validate_frequency(frequency_days)
            friend = self._friend_db.require_friend(friend_id)
        except ValueError as exc:
            return ErrorResponse(kind=ResponseKind.ERROR, message=str(exc))

        updated = apply_cadence_change(friend, days)
        self._friend_db.save_friend(updated)
        return SuccessResponse(
            kind=ResponseKind.SUCCESS,
            message=f"{friend.name}: cadence {friend.frequency_days}d -> {updated.frequency_days}d.",
            friend=updated,
        )

    def delete_friend(self, friend_id: str) -> ServiceResponse:
        if not self._friend_db.delete_friend(friend_id):
            return ErrorResponse(kind=ResponseKind.ERROR, message=f"Friend {friend_id} not found")
        return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Deleted {friend_id}.")

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------

    def request_meeting(self, name: str, now: datetime, **details: str | None) -> ServiceResponse:
        """Record a new meeting request (status REQUESTED)."""
        try:
            meeting = MeetingRequest(
                id=generate_id(),
                name=validate_name(name),
                status=MeetingStatus.REQUESTED,
                date_added=now,
                **details,
            )
            self._meeting_db.add_meeting(meeting)
        except ValueError as exc:
            return ErrorResponse(kind=ResponseKind.ERROR, message=str(exc))
        return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Meeting with {meeting.name} requested.")

    def schedule_meeting(self, meeting_id: str, scheduled_date: datetime) -> ServiceResponse:
        meeting = self._meeting_db.get_meeting(meeting_id)
        if meeting is None:
            return ErrorResponse(kind=ResponseKind.ERROR, message=f"Meeting {meeting_id} not found")
        self._meeting_db.save_meeting(
            replace(meeting, status=MeetingStatus.SCHEDULED, scheduled_date=scheduled_date),
        )
        return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Meeting with {meeting.name} scheduled.")

    def complete_meeting(self, meeting_id: str, verified: bool) -> ServiceResponse:
        """Close a meeting; only verified meetings earn garden points."""
        meeting = self._meeting_db.get_meeting(meeting_id)
        if meeting is None:
            return ErrorResponse(kind=ResponseKind.ERROR, message=f"Meeting {meeting_id} not found")
        self._meeting_db.save_meeting(
            replace(meeting, status=MeetingStatus.COMPLETE, verified=verified),
        )
        return SuccessResponse(kind=ResponseKind.SUCCESS, message=f"Meeting with {meeting.name} complete.")

    # ------------------------------------------------------------------
    # Nudges
    # ------------------------------------------------------------------

    def smart_nudges(self) -> list[SmartNudge]:
        return get_smart_nudges(self._friend_db.list_all())

    def apply_nudge(self, nudge: SmartNudge) -> ServiceResponse:
        """Accept a smart nudge: set the friend's cadence to the suggestion."""
        return self.update_cadence(nudge.friend_id, nudge.suggested_days)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def garden_score(self, now: datetime) -> int:
        return calculate_garden_score(
            self._friend_db.list_all(), self._meeting_db.list_all(), now,
        )

    def overview(self, now: datetime) -> OverviewResponse:
        """Everything a dashboard needs, most urgent friend first."""
        friends = self._friend_db.list_all()
        statuses = [
            FriendStatus(f, compute_time_status(f.last_contacted, f.frequency_days, now))
            for f in friends
        ]
        statuses.sort(key=lambda fs: fs.status.percentage_left)
        score = calculate_garden_score(friends, self._meeting_db.list_all(), now)

        return OverviewResponse(
            kind=ResponseKind.QUERY_RESULT,
            message=f"Garden score: {score}",
            garden_score=score,
            friends=statuses,
            cohorts=get_cohort_stats(friends, now),
            nudges=get_smart_nudges(friends),
        )


def _describe_feedback(friend: Friend, feedback: ActionFeedback) -> str:
    """One-line human summary of an ActionFeedback."""
    parts = [
        f"{feedback.type.value} contact with {friend.name}: "
        f"{feedback.score_delta:+d} (score {feedback.new_score})",
        f"timer {feedback.timer_effect}",
    ]
    if feedback.cadence_shortened:
        parts.append(
            f"cadence shortened {feedback.old_frequency_days}d -> {feedback.new_frequency_days}d"
        )
    if feedback.token_change > 0:
        parts.append("quick touch earned")
    elif feedback.token_change < 0:
        parts.append(f"{feedback.tokens_available} quick touch(es) left")
    return ", ".join(parts) + "."
