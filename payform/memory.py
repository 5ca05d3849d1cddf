from __future__ import annotations

import itertools
import logging
from dataclasses import asdict, replace
from datetime import datetime, UTC
from typing import Dict, List, Optional

from payform.errors import DuplicateKeyError
from payform.records import (
    NewPayment,
    Payment,
    PaymentStorage,
    User,
    check_payment_changes,
    mask_card_number,
)

logger = logging.getLogger(__name__)

USER_FIELDS = frozenset({"username", "password"})


class MemoryStorage(PaymentStorage):
    """Process-lifetime storage kept in two dicts.

    Not thread-safe: the API only touches it from the event loop.
    """

    kind = "memory"

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._payments: Dict[int, Payment] = {}
        self._user_ids = itertools.count(1)
        self._payment_ids = itertools.count(1)

    # users

    def create_user(self, username: str, password: str) -> User:
        if self._find_user(username):
            raise DuplicateKeyError(f"username {username!r} already exists")
        user = User(id=next(self._user_ids), username=username, password=password)
        self._users[user.id] = user
        logger.info("CREATE User: %s (ID: %s)", user.username, user.id)
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        logger.info("READ User by ID %s: %s", user_id, "Found" if user else "Not found")
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        user = self._find_user(username)
        logger.info("READ User by username %r: %s", username, "Found" if user else "Not found")
        return user

    def update_user(self, user_id: int, **changes) -> Optional[User]:
        unknown = set(changes) - USER_FIELDS
        if unknown:
            raise ValueError(f"unknown user fields: {sorted(unknown)}")
        user = self._users.get(user_id)
        if not user:
            logger.info("UPDATE User ID %s: Not found", user_id)
            return None
        other = self._find_user(changes.get("username", user.username))
        if other and other.id != user_id:
            raise DuplicateKeyError(f"username {other.username!r} already exists")
        user = replace(user, **changes)
        self._users[user_id] = user
        logger.info("UPDATE User ID %s: Updated", user_id)
        return user

    def delete_user(self, user_id: int) -> bool:
        deleted = self._users.pop(user_id, None) is not None
        logger.info("DELETE User ID %s: %s", user_id, "Success" if deleted else "Not found")
        return deleted

    # payments

    def create_payment(self, new: NewPayment) -> Payment:
        if self._find_transaction(new.transaction_id):
            raise DuplicateKeyError(f"transaction {new.transaction_id!r} already exists")
        now = datetime.now(UTC)
        fields = asdict(new)
        fields.update(
            card_number=mask_card_number(new.card_number),
            message=new.message or None,
            status=check_payment_changes({"status": new.status})["status"],
        )
        payment = Payment(id=next(self._payment_ids), created_at=now, updated_at=now, **fields)
        self._payments[payment.id] = payment
        logger.info("CREATE Payment: Transaction %s (ID: %s)", payment.transaction_id, payment.id)
        return payment

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        payment = self._payments.get(payment_id)
        logger.info("READ Payment by ID %s: %s", payment_id, "Found" if payment else "Not found")
        return payment

    def get_payment_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        payment = self._find_transaction(transaction_id)
        logger.info(
            "READ Payment by transaction %r: %s",
            transaction_id,
            "Found" if payment else "Not found",
        )
        return payment

    def update_payment(self, payment_id: int, **changes) -> Optional[Payment]:
        changes = check_payment_changes(changes)
        payment = self._payments.get(payment_id)
        if not payment:
            logger.info("UPDATE Payment ID %s: Not found", payment_id)
            return None
        payment = replace(payment, updated_at=datetime.now(UTC), **changes)
        self._payments[payment_id] = payment
        logger.info("UPDATE Payment ID %s: status is %s", payment_id, payment.status)
        return payment

    def delete_payment(self, payment_id: int) -> bool:
        deleted = self._payments.pop(payment_id, None) is not None
        logger.info("DELETE Payment ID %s: %s", payment_id, "Success" if deleted else "Not found")
        return deleted

    def get_all_payments(self) -> List[Payment]:
        payments = list(self._payments.values())
        logger.info("READ All Payments: %d records", len(payments))
        return payments

    def get_payments_by_email(self, email: str) -> List[Payment]:
        wanted = email.lower()
        payments = [p for p in self._payments.values() if p.email.lower() == wanted]
        logger.info("READ Payments by email %r: %d records", email, len(payments))
        return payments

    def get_payments_by_status(self, status: str) -> List[Payment]:
        payments = [p for p in self._payments.values() if p.status == status]
        logger.info("READ Payments by status %r: %d records", status, len(payments))
        return payments

    def _find_user(self, username: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.username == username), None)

    def _find_transaction(self, transaction_id: str) -> Optional[Payment]:
        return next(
            (p for p in self._payments.values() if p.transaction_id == transaction_id), None
        )
