"""Stay-date and guest checks applied before a search is sent upstream."""
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

# Upstream search limits
MAX_CHECKIN_DAYS_AHEAD = 730
MAX_STAY_NIGHTS = 30
MAX_GUESTS_PER_ROOM = 6
MIN_ADULTS_PER_ROOM = 1
MAX_CHILDREN_PER_ROOM = 4
MAX_CHILD_AGE = 17
MIN_ROOMS_PER_REQUEST = 1
MAX_ROOMS_PER_REQUEST = 9
MAX_HOTELS_PER_ID_SEARCH = 300

DateLike = Union[date, datetime, str, None]


@dataclass
class DateValidationResult:
    is_valid: bool
    check_in: date
    check_out: date
    was_refreshed: bool
    message: Optional[str] = None


def _parse_date(value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def validate_and_refresh_dates(
    check_in: DateLike,
    check_out: DateLike,
    max_stay_nights: int = MAX_STAY_NIGHTS,
    today: Optional[date] = None,
) -> DateValidationResult:
    """Return usable dates, replacing stale or inconsistent ones instead of failing.

    - missing dates → tomorrow, plus two nights
    - check-in in the past → tomorrow, keeping the stay length (1..max_stay_nights)
    - check-out on/before check-in → check-in + 1
    - stay longer than max_stay_nights → clamped
    """
    today = today or date.today()
    tomorrow = today + timedelta(days=1)

    parsed_in = _parse_date(check_in)
    parsed_out = _parse_date(check_out)

    if not parsed_in or not parsed_out:
        return DateValidationResult(True, tomorrow, tomorrow + timedelta(days=2), True, "Dates set to default")

    if parsed_in < today:
        nights = (parsed_out - parsed_in).days
        nights = min(max(nights, 1), max_stay_nights)
        return DateValidationResult(
            True, tomorrow, tomorrow + timedelta(days=nights), True,
            "Dates were in the past and have been updated",
        )

    if parsed_out <= parsed_in:
        return DateValidationResult(
            True, parsed_in, parsed_in + timedelta(days=1), True, "Check-out date was adjusted"
        )

    nights = (parsed_out - parsed_in).days
    if nights > max_stay_nights:
        return DateValidationResult(
            True, parsed_in, parsed_in + timedelta(days=max_stay_nights), True,
            f"Stay was limited to {max_stay_nights} nights",
        )

    return DateValidationResult(True, parsed_in, parsed_out, False)


def is_check_in_in_past(check_in: DateLike, today: Optional[date] = None) -> bool:
    parsed = _parse_date(check_in)
    if not parsed:
        return False
    return parsed < (today or date.today())


def is_check_in_too_far(check_in: DateLike, today: Optional[date] = None) -> bool:
    parsed = _parse_date(check_in)
    if not parsed:
        return False
    return (parsed - (today or date.today())).days > MAX_CHECKIN_DAYS_AHEAD


# ── Guests ────────────────────────────────────────────────────────────────────

_DIGITS = re.compile(r"\d")


def sanitize_guest_name(name: str) -> str:
    """The upstream rejects digits in guest first/last names."""
    return _DIGITS.sub("", name).strip()


def has_invalid_name_chars(name: str) -> bool:
    return bool(_DIGITS.search(name))


def validate_room_guests(adults: int, children_ages: list) -> Optional[str]:
    """Return an error message for an over-full room, or None."""
    if adults < MIN_ADULTS_PER_ROOM:
        return f"At least {MIN_ADULTS_PER_ROOM} adult required per room"
    if len(children_ages) > MAX_CHILDREN_PER_ROOM:
        return f"Maximum {MAX_CHILDREN_PER_ROOM} children per room"
    if adults + len(children_ages) > MAX_GUESTS_PER_ROOM:
        return f"Maximum {MAX_GUESTS_PER_ROOM} guests per room"
    if any(age < 0 or age > MAX_CHILD_AGE for age in children_ages):
        return f"Child ages must be between 0 and {MAX_CHILD_AGE}"
    return None
