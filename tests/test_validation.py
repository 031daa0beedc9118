"""Tests for card and stay-date validation."""
from datetime import date

import pytest

from core.card_validation import (
    detect_card_type,
    format_card_number,
    format_expiry,
    validate_card_number,
    validate_cvv,
    validate_expiry,
    validate_luhn,
)
from core.date_validation import (
    has_invalid_name_chars,
    is_check_in_in_past,
    is_check_in_too_far,
    sanitize_guest_name,
    validate_and_refresh_dates,
    validate_room_guests,
)

TODAY = date(2026, 3, 15)


# ── Cards ──────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("number,expected", [
    ("4111 1111 1111 1111", "visa"),
    ("5555555555554444", "mastercard"),
    ("2221000000000009", "mastercard"),
    ("378282246310005", "amex"),
    ("6011111111111117", "discover"),
    ("9999999999999999", "unknown"),
])
def test_detect_card_type(number, expected):
    assert detect_card_type(number).type == expected


def test_luhn():
    assert validate_luhn("4111111111111111") is True
    assert validate_luhn("4111111111111112") is False
    assert validate_luhn("411111111111") is False  # too short


def test_validate_card_number_messages():
    assert validate_card_number("").error == "Card number is required"
    assert validate_card_number("4111 1111 1111").error == "Visa cards should have 13 or 16 or 19 digits"
    assert validate_card_number("4111111111111112").error == "Invalid card number"
    assert validate_card_number("4111-1111-1111-1111").valid is True


def test_expiry_current_month_still_valid():
    assert validate_expiry("03/26", today=TODAY).valid is True
    assert validate_expiry("02/26", today=TODAY).error == "Card has expired"
    assert validate_expiry("12/25", today=TODAY).error == "Card has expired"


def test_expiry_format_and_range():
    assert validate_expiry("3/26", today=TODAY).error == "Enter expiry as MM/YY"
    assert validate_expiry("13/27", today=TODAY).error == "Invalid month (01-12)"
    assert validate_expiry("01/47", today=TODAY).error == "Invalid expiry year"
    assert validate_expiry("01/46", today=TODAY).valid is True


def test_cvv_length_depends_on_brand():
    assert validate_cvv("1234", "amex").valid is True
    assert validate_cvv("123", "amex").error == "CVV should be 4 digits"
    assert validate_cvv("123", "visa").valid is True
    assert validate_cvv("", "visa").error == "CVV is required"


def test_format_card_number():
    assert format_card_number("4111111111111111") == "4111 1111 1111 1111"
    assert format_card_number("378282246310005", "amex") == "3782 822463 10005"
    assert format_card_number("41111") == "4111 1"


def test_format_expiry():
    assert format_expiry("0326") == "03/26"
    assert format_expiry("0") == "0"


# ── Stay dates ─────────────────────────────────────────────────────────────────

def test_missing_dates_default_to_tomorrow_plus_two():
    result = validate_and_refresh_dates(None, "", today=TODAY)
    assert result.check_in == date(2026, 3, 16)
    assert result.check_out == date(2026, 3, 18)
    assert result.was_refreshed is True


def test_past_check_in_moves_to_tomorrow_keeping_nights():
    result = validate_and_refresh_dates("2026-03-01", "2026-03-05", today=TODAY)
    assert result.check_in == date(2026, 3, 16)
    assert result.check_out == date(2026, 3, 20)
    assert result.message == "Dates were in the past and have been updated"


def test_past_check_in_with_bad_checkout_keeps_one_night():
    result = validate_and_refresh_dates(date(2026, 3, 1), date(2026, 2, 1), today=TODAY)
    assert (result.check_out - result.check_in).days == 1


def test_checkout_before_check_in_adjusted():
    result = validate_and_refresh_dates("2026-04-10", "2026-04-10", today=TODAY)
    assert result.check_out == date(2026, 4, 11)
    assert result.message == "Check-out date was adjusted"


def test_long_stay_clamped():
    result = validate_and_refresh_dates("2026-04-01", "2026-06-01", today=TODAY)
    assert (result.check_out - result.check_in).days == 30


def test_valid_dates_untouched():
    result = validate_and_refresh_dates("2026-04-01T00:00:00", "2026-04-05", today=TODAY)
    assert result.was_refreshed is False
    assert result.check_in == date(2026, 4, 1)


def test_check_in_past_and_too_far():
    assert is_check_in_in_past("2026-03-14", today=TODAY) is True
    assert is_check_in_in_past("2026-03-15", today=TODAY) is False
    assert is_check_in_in_past("garbage", today=TODAY) is False
    assert is_check_in_too_far("2028-04-01", today=TODAY) is True
    assert is_check_in_too_far("2027-03-15", today=TODAY) is False


# ── Guests ─────────────────────────────────────────────────────────────────────

def test_guest_names():
    assert sanitize_guest_name(" Jane2 Doe3 ") == "Jane Doe"
    assert has_invalid_name_chars("R2D2") is True
    assert has_invalid_name_chars("Zoë") is False


def test_room_guest_limits():
    assert validate_room_guests(2, [5, 8]) is None
    assert validate_room_guests(0, []) == "At least 1 adult required per room"
    assert validate_room_guests(1, [1, 2, 3, 4, 5]) == "Maximum 4 children per room"
    assert validate_room_guests(4, [1, 2, 3]) == "Maximum 6 guests per room"
    assert validate_room_guests(2, [18]) == "Child ages must be between 0 and 17"
