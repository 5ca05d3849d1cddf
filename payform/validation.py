from __future__ import annotations

import re
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Callable, Dict, List, Optional

_CARD_RE = re.compile(r"[0-9]{16}")
_CVC_RE = re.compile(r"[0-9]{3,4}")
_EXPIRY_RE = re.compile(r"([0-9]{2})/([0-9]{2})")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_POSTAL_RE = re.compile(r"[0-9]{5}(-[0-9]{4})?")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_json(self) -> Dict:
        return asdict(self)


def is_present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def validate_card_number(value: str) -> bool:
    return _CARD_RE.fullmatch(value.replace(" ", "")) is not None


def validate_cvc(value: str) -> bool:
    return _CVC_RE.fullmatch(value) is not None


def validate_expiry_date(value: str, today: Optional[date] = None) -> bool:
    """MM/YY, month 1..12, and not earlier than the current month."""
    match = _EXPIRY_RE.fullmatch(value)
    if not match:
        return False
    month, year = int(match.group(1)), int(match.group(2))
    if month < 1 or month > 12:
        return False
    today = today or date.today()
    return (year, month) >= (today.year % 100, today.month)


def validate_amount(value: str) -> bool:
    if not value.isascii():
        return False
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return False
    return amount.is_finite() and amount > 0


def validate_email(value: str) -> bool:
    return _EMAIL_RE.fullmatch(value) is not None


def validate_postal_code(value: str) -> bool:
    return _POSTAL_RE.fullmatch(value) is not None


@dataclass(frozen=True)
class Rule:
    field: str
    check: Callable[[str], bool]
    message: str


RULES = (
    Rule("cardNumber", validate_card_number, "Card number must be 16 digits"),
    Rule("cvc", validate_cvc, "CVC must be 3-4 digits"),
    Rule("expiryDate", validate_expiry_date, "Expiry date must be valid and in the future (MM/YY)"),
    Rule("amount", validate_amount, "Amount must be a valid positive number"),
    Rule("firstName", is_present, "First name is required"),
    Rule("lastName", is_present, "Last name is required"),
    Rule("email", validate_email, "Please enter a valid email address"),
    Rule("city", is_present, "City is required"),
    Rule("state", is_present, "State is required"),
    Rule("postalCode", validate_postal_code, "Postal code must be in format 12345 or 12345-6789"),
)


def required_message(field: str) -> str:
    return f"{field[:1].upper()}{field[1:]} is required"


def validate_payment_form(form: Dict[str, str], today: Optional[date] = None) -> List[FieldError]:
    """Check every field in order and return all failures, not just the first.

    An empty field reports "<FieldName> is required" (e.g. "CardNumber is
    required") instead of its format message.
    """
    errors: List[FieldError] = []
    for rule in RULES:
        value = form.get(rule.field) or ""
        if not is_present(value):
            errors.append(FieldError(rule.field, required_message(rule.field)))
            continue
        check = rule.check
        if check is validate_expiry_date:
            check = partial(validate_expiry_date, today=today)
        if not check(value):
            errors.append(FieldError(rule.field, rule.message))
    return errors
