"""Tests for src.core.friend_engine — contact actions and history edits."""

from datetime import timedelta

import pytest

from conftest import NOW, make_friend, make_log
from src.core.friend_engine import (
    QUICK_TOUCH_EXTENSION,
    create_friend,
    process_contact,
    remove_log,
)
from src.core.scoring import calculate_individual_score
from src.core.validation import FriendValidationError
from src.data.models import ContactChannel, ContactType


class TestRegularContact:
    def test_sweet_spot_earns_ten(self):
        friend = make_friend(last_contacted=NOW - timedelta(days=6))   # 40% left
        result = process_contact(friend, ContactType.REGULAR, NOW)

        assert result.changed is True
        assert result.feedback.score_delta == 10
        assert result.friend.individual_score == 60
        assert result.friend.last_contacted == NOW
        assert result.feedback.timer_effect == "reset to 10d"

    def test_on_time_earns_five(self):
        friend = make_friend()   # 60% left
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.feedback.score_delta == 5
        assert result.friend.individual_score == 55

    def test_overdue_penalty_capped(self):
        friend = make_friend(last_contacted=NOW - timedelta(days=20))
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.feedback.score_delta == -30
        assert result.friend.individual_score == 20

    def test_slightly_overdue(self):
        friend = make_friend(last_contacted=NOW - timedelta(days=12))
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.feedback.score_delta == -10

    def test_log_records_contact(self):
        friend = make_friend(logs=(make_log("old", days_ago=4),))
        result = process_contact(
            friend, ContactType.REGULAR, NOW, channel=ContactChannel.CALL, log_id="new",
        )
        newest = result.friend.logs[0]
        assert [log.id for log in result.friend.logs] == ["new", "old"]
        assert newest.date == NOW
        assert newest.type == ContactType.REGULAR
        assert newest.channel == ContactChannel.CALL
        assert newest.percentage_remaining == pytest.approx(60.0)
        assert newest.days_wait_goal == 10
        assert newest.score_delta == 5

    def test_input_record_untouched(self):
        friend = make_friend()
        process_contact(friend, ContactType.REGULAR, NOW)
        assert friend.logs == ()
        assert friend.individual_score == 50
        assert friend.last_contacted == NOW - timedelta(days=4)

    def test_score_is_rederived_from_logs(self):
        friend = make_friend(
            individual_score=90,   # stale cached value
            logs=(make_log("a", delta=5), make_log("b", days_ago=3, delta=-10)),
        )
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.friend.individual_score == calculate_individual_score(result.friend.logs)
        assert result.friend.individual_score == 50


class TestTokenLedger:
    def test_first_regular_counts_cycle(self):
        result = process_contact(make_friend(), ContactType.REGULAR, NOW)
        assert result.friend.cycles_since_last_quick_touch == 1
        assert result.friend.quick_touches_available == 0
        assert result.feedback.token_change == 0

    def test_second_regular_grants_token(self):
        friend = make_friend(cycles_since_last_quick_touch=1)
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.friend.quick_touches_available == 1
        assert result.friend.cycles_since_last_quick_touch == 0
        assert result.feedback.token_change == 1
        assert result.feedback.tokens_available == 1

    def test_deep_also_counts_cycle(self):
        friend = make_friend(cycles_since_last_quick_touch=1)
        result = process_contact(friend, ContactType.DEEP, NOW)
        assert result.friend.quick_touches_available == 1

    def test_tokens_never_exceed_one(self):
        friend = make_friend(quick_touches_available=1, cycles_since_last_quick_touch=1)
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.friend.quick_touches_available == 1
        assert result.feedback.token_change == 0


class TestCadenceShorteningOnContact:
    def test_two_early_contacts_halve_cadence(self):
        friend = make_friend(
            last_contacted=NOW - timedelta(days=1),   # 90% left
            logs=(make_log("prev", days_ago=1, percentage=90),),
        )
        result = process_contact(friend, ContactType.REGULAR, NOW)

        assert result.cadence_shortened is True
        assert result.friend.frequency_days == 5
        assert result.feedback.old_frequency_days == 10
        assert result.feedback.new_frequency_days == 5
        assert result.feedback.timer_effect == "reset to 5d"
        assert result.friend.logs[0].days_wait_goal == 5
        # scored against the old timer
        assert result.feedback.score_delta == -2

    def test_single_early_contact_keeps_cadence(self):
        friend = make_friend(last_contacted=NOW - timedelta(days=1))
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.cadence_shortened is False
        assert result.friend.frequency_days == 10
        assert result.feedback.old_frequency_days is None

    def test_one_day_cadence_not_reported(self):
        friend = make_friend(
            frequency_days=1,
            last_contacted=NOW - timedelta(hours=1),
            logs=(make_log("prev", percentage=95, goal=1),),
        )
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.friend.frequency_days == 1
        assert result.cadence_shortened is False


class TestDeepConnection:
    def test_deep_bonus(self):
        friend = make_friend()
        result = process_contact(friend, ContactType.DEEP, NOW)

        assert result.feedback.score_delta == 15
        assert result.friend.individual_score == 65
        assert result.friend.last_deep_connection == NOW
        assert result.friend.last_contacted == NOW + timedelta(hours=12)
        assert result.feedback.timer_effect == "reset to 10d + 12h"

    def test_deep_ignores_overdue(self):
        friend = make_friend(last_contacted=NOW - timedelta(days=30))
        result = process_contact(friend, ContactType.DEEP, NOW)
        assert result.feedback.score_delta == 15

    def test_deep_never_shortens(self):
        friend = make_friend(
            last_contacted=NOW - timedelta(days=1),
            logs=(make_log("prev", percentage=95),),
        )
        result = process_contact(friend, ContactType.DEEP, NOW)
        assert result.friend.frequency_days == 10
        assert result.cadence_shortened is False


class TestQuickTouch:
    def test_without_token_is_noop(self):
        friend = make_friend()
        result = process_contact(friend, ContactType.QUICK, NOW)

        assert result.changed is False
        assert result.friend is friend
        assert result.feedback.score_delta == 0
        assert result.feedback.token_change == 0
        assert result.feedback.timer_effect == "No tokens available"

    def test_spends_token(self):
        friend = make_friend(quick_touches_available=1, cycles_since_last_quick_touch=1)
        result = process_contact(friend, ContactType.QUICK, NOW)

        assert result.changed is True
        assert result.friend.quick_touches_available == 0
        assert result.friend.cycles_since_last_quick_touch == 1
        assert result.feedback.token_change == -1
        assert result.feedback.score_delta == 2
        assert result.friend.individual_score == 52
        assert result.friend.logs[0].type == ContactType.QUICK

    def test_extends_timer_thirty_minutes(self):
        friend = make_friend(quick_touches_available=1)
        result = process_contact(friend, ContactType.QUICK, NOW)
        assert result.friend.last_contacted == friend.last_contacted + QUICK_TOUCH_EXTENSION
        assert result.feedback.timer_effect == "+30 min"

    def test_quick_keeps_cadence(self):
        friend = make_friend(
            quick_touches_available=1,
            last_contacted=NOW - timedelta(hours=2),
            logs=(make_log("prev", percentage=95),),
        )
        result = process_contact(friend, ContactType.QUICK, NOW)
        assert result.friend.frequency_days == 10


class TestScoreBounds:
    def test_capped_at_hundred(self):
        friend = make_friend(logs=(make_log("big", delta=60),), individual_score=100)
        result = process_contact(friend, ContactType.DEEP, NOW)
        assert result.friend.individual_score == 100

    def test_floored_at_zero(self):
        friend = make_friend(
            last_contacted=NOW - timedelta(days=40),
            logs=(make_log("bad", delta=-45),),
            individual_score=5,
        )
        result = process_contact(friend, ContactType.REGULAR, NOW)
        assert result.friend.individual_score == 0


class TestRemoveLog:
    def _friend(self):
        return make_friend(
            individual_score=65,
            logs=(
                make_log("l2", days_ago=1, delta=10),
                make_log("l1", days_ago=3, delta=5),
            ),
            last_contacted=NOW - timedelta(days=1),
        )

    def test_removes_and_rescores(self):
        updated = remove_log(self._friend(), "l2")
        assert [log.id for log in updated.logs] == ["l1"]
        assert updated.individual_score == 55
        assert updated.last_contacted == NOW - timedelta(days=3)

    def test_last_contacted_uses_newest_date(self):
        friend = make_friend(logs=(
            make_log("older", days_ago=5),
            make_log("newer", days_ago=2),
            make_log("gone", days_ago=1),
        ))
        updated = remove_log(friend, "gone")
        assert updated.last_contacted == NOW - timedelta(days=2)

    def test_removing_last_log_keeps_last_contacted(self):
        friend = make_friend(logs=(make_log("only", delta=10),), individual_score=60)
        updated = remove_log(friend, "only")
        assert updated.logs == ()
        assert updated.individual_score == 50
        assert updated.last_contacted == friend.last_contacted

    def test_unknown_id_leaves_history(self):
        friend = self._friend()
        updated = remove_log(friend, "missing")
        assert updated.logs == friend.logs
        assert updated.individual_score == 65

    def test_idempotent(self):
        once = remove_log(self._friend(), "l2")
        assert remove_log(once, "l2") == once

    def test_keeps_token_ledger(self):
        friend = make_friend(
            quick_touches_available=1,
            cycles_since_last_quick_touch=1,
            logs=(make_log("l1"),),
        )
        updated = remove_log(friend, "l1")
        assert updated.quick_touches_available == 1
        assert updated.cycles_since_last_quick_touch == 1


class TestCreateFriend:
    def test_defaults(self):
        friend = create_friend("  Bob ", "Family", 7, NOW, friend_id="b1")
        assert friend.id == "b1"
        assert friend.name == "Bob"
        assert friend.category == "Family"
        assert friend.frequency_days == 7
        assert friend.last_contacted == NOW
        assert friend.individual_score == 50
        assert friend.quick_touches_available == 0
        assert friend.logs == ()

    def test_generates_id(self):
        friend = create_friend("Bob", "Family", 7, NOW)
        assert len(friend.id) == 8

    def test_blank_category_defaults(self):
        assert create_friend("Bob", "  ", 7, NOW).category == "Friends"

    def test_sanitises_phone(self):
        friend = create_friend("Bob", "Family", 7, NOW, phone="+1 (555) 123-4567 ;DROP")
        assert friend.phone == "+1 (555) 123-4567"

    def test_rejects_empty_name(self):
        with pytest.raises(FriendValidationError):
            create_friend("   ", "Family", 7, NOW)

    def test_rejects_zero_frequency(self):
        with pytest.raises(FriendValidationError):
            create_friend("Bob", "Family", 0, NOW)

    @pytest.mark.parametrize("birthday", ["13-45", "7-4", "July 4"])
    def test_rejects_bad_birthday(self, birthday):
        with pytest.raises(FriendValidationError, match="Invalid birthday"):
            create_friend("Bob", "Family", 7, NOW, birthday=birthday)

    def test_accepts_birthday(self):
        assert create_friend("Bob", "Family", 7, NOW, birthday="07-04").birthday == "07-04"

    def test_rejects_bad_email(self):
        with pytest.raises(FriendValidationError, match="Invalid email"):
            create_friend("Bob", "Family", 7, NOW, email="not-an-email")
