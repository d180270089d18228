"""Tests for src.core.validation — input sanitisation."""

import pytest

from conftest import make_friend
from src.core.validation import (
    FriendValidationError,
    is_valid_email,
    parse_birthday,
    sanitize_phone,
    sanitize_text,
    validate_frequency,
    validate_friend,
    validate_name,
)


class TestSanitize:
    def test_text_trimmed_and_truncated(self):
        assert sanitize_text("  hello  ") == "hello"
        assert len(sanitize_text("x" * 500)) == 200

    def test_phone_keeps_allowed_characters(self):
        assert sanitize_phone("+1 (555) 123-4567 ext 9") == "+1 (555) 123-4567 ext 9"

    def test_phone_strips_junk(self):
        assert sanitize_phone("555#1234!") == "5551234"

    def test_phone_max_length(self):
        assert len(sanitize_phone("1" * 50)) == 30


class TestEmail:
    @pytest.mark.parametrize("email", [None, "", "a@b.co", "first.last@example.org"])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["plain", "a@b", "a b@c.de", "@example.com"])
    def test_invalid(self, email):
        assert not is_valid_email(email)


class TestBirthday:
    def test_parses(self):
        assert parse_birthday("07-14") == (7, 14)

    @pytest.mark.parametrize("raw", ["7-14", "13-01", "00-10", "07-32", "July 14"])
    def test_rejects(self, raw):
        assert parse_birthday(raw) is None


class TestFrequencyAndName:
    def test_frequency_accepts_numeric_string(self):
        assert validate_frequency("7") == 7

    @pytest.mark.parametrize("value", [0, -3, "abc", None])
    def test_frequency_rejects(self, value):
        with pytest.raises(FriendValidationError):
            validate_frequency(value)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_frequency(0)

    def test_name_trimmed(self):
        assert validate_name("  Dana ") == "Dana"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_name_rejects_blank(self, value):
        with pytest.raises(FriendValidationError):
            validate_name(value)


class TestValidateFriend:
    def test_valid_record_returned(self):
        friend = make_friend(birthday="02-29", email="a@b.co")
        assert validate_friend(friend) is friend

    @pytest.mark.parametrize("overrides", [
        {"frequency_days": 0},
        {"individual_score": 101},
        {"individual_score": -5},
        {"quick_touches_available": -1},
        {"cycles_since_last_quick_touch": -2},
        {"name": ""},
        {"email": "nope"},
        {"birthday": "99-99"},
    ])
    def test_rejects(self, overrides):
        with pytest.raises(FriendValidationError):
            validate_friend(make_friend(**overrides))
