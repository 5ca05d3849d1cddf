import asyncio
import random
import re
from datetime import date

import pytest

from payform.errors import PaymentDeclined, ValidationFailed
from payform.gateway import DECLINE_PROBABILITY, SimulatedGateway
from payform.memory import MemoryStorage
from payform.pipeline import PaymentPipeline, generate_transaction_id, redact_form

RAW_FORM = {
    "cardNumber": "4111 1111 1111 1111",
    "cvc": "123",
    "expiryDate": "12/30",
    "amount": "49.99",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "Ada@Example.com",
    "city": "London",
    "state": "LN",
    "postalCode": "12345",
    "message": "",
}


def make_pipeline(storage, decline_rate=0.0):
    return PaymentPipeline(
        storage,
        gateway=SimulatedGateway(decline_rate=decline_rate),
        processing_delay=0,
        today=lambda: date(2026, 10, 17),
    )


def test_transaction_id_format():
    tid = generate_transaction_id(now_ms=1700000000000, rng=random.Random(7))
    assert re.fullmatch(r"TXN-1700000000000-[0-9a-z]{9}", tid)


def test_approved_payment_is_completed():
    storage = MemoryStorage()
    receipt = asyncio.run(make_pipeline(storage).submit(RAW_FORM))

    assert receipt.status == "completed"
    assert receipt.email == "ada@example.com"
    assert receipt.name == "Ada Lovelace"
    stored = storage.get_payment(receipt.payment_id)
    assert stored.status == "completed"
    assert stored.card_number == "************1111"
    assert stored.transaction_id == receipt.transaction_id
    assert stored.message is None


def test_declined_payment_is_marked_failed():
    storage = MemoryStorage()
    with pytest.raises(PaymentDeclined) as exc:
        asyncio.run(make_pipeline(storage, decline_rate=1.0).submit(RAW_FORM))

    assert exc.value.payment.status == "failed"
    assert storage.get_payment(exc.value.payment.id).status == "failed"
    assert storage.get_payments_by_status("pending") == []


def test_invalid_submission_stores_nothing():
    storage = MemoryStorage()
    raw = dict(RAW_FORM, email="", cardNumber="4111")
    with pytest.raises(ValidationFailed) as exc:
        asyncio.run(make_pipeline(storage).submit(raw))

    assert [e.field for e in exc.value.errors] == ["cardNumber", "email"]
    assert storage.get_all_payments() == []


def test_identical_submissions_get_distinct_ids():
    storage = MemoryStorage()
    pipeline = make_pipeline(storage)
    first = asyncio.run(pipeline.submit(RAW_FORM))
    second = asyncio.run(pipeline.submit(RAW_FORM))
    assert first.transaction_id != second.transaction_id
    assert first.payment_id != second.payment_id


def test_no_pending_record_left_after_run():
    storage = MemoryStorage()
    pipeline = make_pipeline(storage, decline_rate=0.5)
    for _ in range(10):
        try:
            asyncio.run(pipeline.submit(RAW_FORM))
        except PaymentDeclined:
            pass
    assert storage.get_payments_by_status("pending") == []
    assert len(storage.get_all_payments()) == 10


def test_gateway_decline_rate_bounds():
    assert SimulatedGateway(decline_rate=0.0).authorize()
    assert not SimulatedGateway(decline_rate=1.0).authorize()
    assert SimulatedGateway().decline_rate == DECLINE_PROBABILITY
    with pytest.raises(ValueError):
        SimulatedGateway(decline_rate=1.5)


def test_redact_form_hides_card_and_cvc():
    shown = redact_form(RAW_FORM)
    assert shown["cardNumber"] == "**** **** **** 1111"
    assert shown["cvc"] == "***"
    assert RAW_FORM["cvc"] == "123"
