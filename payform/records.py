from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

MASK_CHAR = "*"
VISIBLE_CARD_DIGITS = 4

# Fields a caller may never change through update_payment.
IMMUTABLE_PAYMENT_FIELDS = frozenset(
    {"id", "transaction_id", "card_number", "created_at", "updated_at"}
)
PAYMENT_FIELDS = frozenset(
    {
        "id", "transaction_id", "card_number", "cvc", "expiry_date", "amount",
        "first_name", "last_name", "email", "city", "state", "postal_code",
        "message", "status", "created_at", "updated_at",
    }
)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    @classmethod
    def values(cls) -> List[str]:
        return [s.value for s in cls]


def mask_card_number(card_number: str) -> str:
    """Replace all but the last four characters with the mask character.

    Spaces are dropped first; shorter inputs are masked entirely.
    """
    cleaned = "".join(card_number.split())
    if len(cleaned) < VISIBLE_CARD_DIGITS:
        return MASK_CHAR * len(cleaned)
    hidden = len(cleaned) - VISIBLE_CARD_DIGITS
    return MASK_CHAR * hidden + cleaned[hidden:]


def check_payment_changes(changes: Dict) -> Dict:
    unknown = set(changes) - PAYMENT_FIELDS
    if unknown:
        raise ValueError(f"unknown payment fields: {sorted(unknown)}")
    frozen = set(changes) & IMMUTABLE_PAYMENT_FIELDS
    if frozen:
        raise ValueError(f"payment fields cannot be changed: {sorted(frozen)}")
    checked = dict(changes)
    if "status" in checked:
        checked["status"] = PaymentStatus(checked["status"]).value
    return checked


@dataclass
class User:
    id: int
    username: str
    password: str


@dataclass
class NewPayment:
    """A sanitized, validated submission ready to be stored."""

    transaction_id: str
    card_number: str
    cvc: str
    expiry_date: str
    amount: str
    first_name: str
    last_name: str
    email: str
    city: str
    state: str
    postal_code: str
    message: Optional[str] = None
    status: str = PaymentStatus.PENDING.value


@dataclass
class Payment:
    id: int
    transaction_id: str
    card_number: str
    cvc: str
    expiry_date: str
    amount: str
    first_name: str
    last_name: str
    email: str
    city: str
    state: str
    postal_code: str
    message: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PaymentStorage(abc.ABC):
    """CRUD contract shared by the memory and database backends.

    Lookups return None for unknown keys, deletes return whether a row was
    removed, and updates of unknown ids return None without creating anything.
    """

    kind = "abstract"

    @abc.abstractmethod
    def create_user(self, username: str, password: str) -> User: ...

    @abc.abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    def update_user(self, user_id: int, **changes) -> Optional[User]: ...

    @abc.abstractmethod
    def delete_user(self, user_id: int) -> bool: ...

    @abc.abstractmethod
    def create_payment(self, new: NewPayment) -> Payment: ...

    @abc.abstractmethod
    def get_payment(self, payment_id: int) -> Optional[Payment]: ...

    @abc.abstractmethod
    def get_payment_by_transaction_id(self, transaction_id: str) -> Optional[Payment]: ...

    @abc.abstractmethod
    def update_payment(self, payment_id: int, **changes) -> Optional[Payment]: ...

    @abc.abstractmethod
    def delete_payment(self, payment_id: int) -> bool: ...

    @abc.abstractmethod
    def get_all_payments(self) -> List[Payment]: ...

    @abc.abstractmethod
    def get_payments_by_email(self, email: str) -> List[Payment]: ...

    @abc.abstractmethod
    def get_payments_by_status(self, status: str) -> List[Payment]: ...
