"""Submission pipeline: sanitize, validate, persist, authorize, finalize.

The record is created as ``pending`` and then moved to ``completed`` or
``failed`` by a second, independent storage call. A crash between the two
leaves the ``pending`` record behind.
"""
from __future__ import annotations

import asyncio
import logging
import random
import string
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional

from payform.errors import PaymentDeclined, ValidationFailed
from payform.gateway import SimulatedGateway
from payform.records import NewPayment, PaymentStatus, PaymentStorage
from payform.sanitize import sanitize_form
from payform.validation import validate_payment_form

logger = logging.getLogger(__name__)

PROCESSING_DELAY_SECONDS = 1.5
TRANSACTION_SUFFIX_LENGTH = 9
BASE36_ALPHABET = string.digits + string.ascii_lowercase


def generate_transaction_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """TXN-<millisecond timestamp>-<9 random base-36 characters>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random
    suffix = "".join(rng.choice(BASE36_ALPHABET) for _ in range(TRANSACTION_SUFFIX_LENGTH))
    return f"TXN-{now_ms}-{suffix}"


def redact_form(raw: Dict) -> Dict:
    """Copy of a submission that is safe to log."""
    shown = dict(raw)
    card = str(shown.get("cardNumber") or "")
    if card:
        shown["cardNumber"] = "**** **** **** " + card[-4:]
    if shown.get("cvc"):
        shown["cvc"] = "***"
    return shown


@dataclass
class PaymentReceipt:
    transaction_id: str
    payment_id: int
    amount: str
    email: str
    name: str
    status: str

    def to_json(self) -> Dict:
        return {
            "success": True,
            "message": f"Payment of ${self.amount} processed successfully!",
            "transactionId": self.transaction_id,
            "paymentId": self.payment_id,
            "data": {
                "amount": self.amount,
                "email": self.email,
                "name": self.name,
                "status": self.status,
            },
        }


class PaymentPipeline:
    def __init__(
        self,
        storage: PaymentStorage,
        gateway: Optional[SimulatedGateway] = None,
        processing_delay: float = PROCESSING_DELAY_SECONDS,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.storage = storage
        self.gateway = gateway or SimulatedGateway()
        self.processing_delay = processing_delay
        self.today = today or date.today

    async def submit(self, raw: Dict) -> PaymentReceipt:
        logger.info("Payment submission received: %s", redact_form(raw))
        form = sanitize_form(raw)

        errors = validate_payment_form(form, today=self.today())
        if errors:
            logger.info("Validation failed: %s", ", ".join(e.message for e in errors))
            raise ValidationFailed(errors)

        payment = self.storage.create_payment(
            NewPayment(
                transaction_id=generate_transaction_id(),
                card_number=form["cardNumber"],
                cvc=form["cvc"],
                expiry_date=form["expiryDate"],
                amount=form["amount"],
                first_name=form["firstName"],
                last_name=form["lastName"],
                email=form["email"],
                city=form["city"],
                state=form["state"],
                postal_code=form["postalCode"],
                message=form["message"] or None,
                status=PaymentStatus.PENDING.value,
            )
        )
        logger.info("Payment stored with ID %s (%s)", payment.id, payment.transaction_id)

        await asyncio.sleep(self.processing_delay)

        if not self.gateway.authorize():
            failed = self.storage.update_payment(payment.id, status=PaymentStatus.FAILED.value)
            logger.warning("Payment %s declined, status set to failed", payment.transaction_id)
            raise PaymentDeclined(failed or payment)

        completed = self.storage.update_payment(payment.id, status=PaymentStatus.COMPLETED.value)
        logger.info("Payment %s completed", payment.transaction_id)
        return PaymentReceipt(
            transaction_id=payment.transaction_id,
            payment_id=payment.id,
            amount=form["amount"],
            email=form["email"],
            name=f"{form['firstName']} {form['lastName']}",
            status=completed.status if completed else PaymentStatus.COMPLETED.value,
        )
