"""Payment card checks: brand detection, Luhn checksum, expiry and CVV."""
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Pattern, Tuple

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class CardTypeInfo:
    type: str
    name: str
    lengths: Tuple[int, ...]
    cvv_length: int
    pattern: Pattern


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None


CARD_TYPES = (
    CardTypeInfo("visa", "Visa", (13, 16, 19), 3, re.compile(r"^4")),
    CardTypeInfo("mastercard", "Mastercard", (16,), 3, re.compile(r"^(5[1-5]|2[2-7])")),
    CardTypeInfo("amex", "American Express", (15,), 4, re.compile(r"^3[47]")),
    CardTypeInfo("discover", "Discover", (16, 19), 3, re.compile(r"^(6011|65|64[4-9])")),
)
UNKNOWN_CARD = CardTypeInfo("unknown", "Unknown", (16,), 3, re.compile(r"."))

MAX_EXPIRY_YEARS_AHEAD = 20


def _digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def detect_card_type(card_number: str) -> CardTypeInfo:
    digits = _digits(card_number)
    for card_type in CARD_TYPES:
        if card_type.pattern.match(digits):
            return card_type
    return UNKNOWN_CARD


def validate_luhn(card_number: str) -> bool:
    digits = _digits(card_number)
    if not 13 <= len(digits) <= 19:
        return False

    total = 0
    for i, ch in enumerate(reversed(digits)):
        digit = int(ch)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_card_number(card_number: str) -> ValidationResult:
    """Length for the detected brand first, then the Luhn checksum."""
    digits = _digits(card_number)
    if not digits:
        return ValidationResult(False, "Card number is required")

    card_type = detect_card_type(digits)
    if len(digits) not in card_type.lengths:
        expected = " or ".join(str(n) for n in card_type.lengths)
        return ValidationResult(False, f"{card_type.name} cards should have {expected} digits")

    if not validate_luhn(digits):
        return ValidationResult(False, "Invalid card number")

    return ValidationResult(True)


def validate_expiry(expiry: str, today: Optional[date] = None) -> ValidationResult:
    """Validate an MM/YY expiry. The card stays valid through its expiry month."""
    clean = _digits(expiry)
    if len(clean) != 4:
        return ValidationResult(False, "Enter expiry as MM/YY")

    month = int(clean[:2])
    year = int(clean[2:])
    if not 1 <= month <= 12:
        return ValidationResult(False, "Invalid month (01-12)")

    today = today or date.today()
    current_year = today.year % 100
    if year < current_year or (year == current_year and month < today.month):
        return ValidationResult(False, "Card has expired")
    if year > current_year + MAX_EXPIRY_YEARS_AHEAD:
        return ValidationResult(False, "Invalid expiry year")

    return ValidationResult(True)


def validate_cvv(cvv: str, card_type: str) -> ValidationResult:
    digits = _digits(cvv)
    expected = 4 if card_type == "amex" else 3
    if not digits:
        return ValidationResult(False, "CVV is required")
    if len(digits) != expected:
        return ValidationResult(False, f"CVV should be {expected} digits")
    return ValidationResult(True)


def format_card_number(value: str, card_type: Optional[str] = None) -> str:
    digits = _digits(value)
    if card_type == "amex":
        parts = [digits[:4], digits[4:10], digits[10:15]]
        return " ".join(p for p in parts if p)
    digits = digits[:16]
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))


def format_expiry(value: str) -> str:
    digits = _digits(value)
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:4]}"
    return digits
