import re
from typing import Dict, Optional

_MARKUP_CHARS = re.compile(r"[<>\"']")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")

TEXT_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 254
NUMERIC_MAX_LENGTH = 20

NUMERIC_FIELDS = ("cardNumber", "cvc", "amount", "postalCode")
EMAIL_FIELDS = ("email",)
TEXT_FIELDS = ("expiryDate", "firstName", "lastName", "city", "state", "message")


def sanitize_text(value: Optional[str]) -> str:
    cleaned = (value or "").strip()
    return _MARKUP_CHARS.sub("", cleaned)[:TEXT_MAX_LENGTH]


def sanitize_email(value: Optional[str]) -> str:
    return (value or "").lower().strip()[:EMAIL_MAX_LENGTH]


def sanitize_numeric(value: Optional[str]) -> str:
    return _NON_NUMERIC.sub("", value or "")[:NUMERIC_MAX_LENGTH]


def sanitize_form(raw: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Clean every submitted payment field with the sanitizer for its kind."""
    cleaned: Dict[str, str] = {}
    for field in NUMERIC_FIELDS:
        cleaned[field] = sanitize_numeric(raw.get(field))
    for field in EMAIL_FIELDS:
        cleaned[field] = sanitize_email(raw.get(field))
    for field in TEXT_FIELDS:
        cleaned[field] = sanitize_text(raw.get(field))
    return cleaned
