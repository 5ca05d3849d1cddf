"""Read-side views over stored payments. None of them expose card data."""
from __future__ import annotations

from collections import Counter
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from payform.records import Payment, PaymentStatus, PaymentStorage


def _iso(value) -> str:
    return value.isoformat()


def payment_view(payment: Payment) -> Dict:
    return {
        "id": payment.id,
        "transactionId": payment.transaction_id,
        "amount": payment.amount,
        "status": payment.status,
        "customerName": payment.customer_name,
        "email": payment.email,
        "createdAt": _iso(payment.created_at),
        "updatedAt": _iso(payment.updated_at),
    }


def find_payment(storage: PaymentStorage, transaction_id: str) -> Optional[Dict]:
    payment = storage.get_payment_by_transaction_id(transaction_id)
    return payment_view(payment) if payment else None


def customer_history(storage: PaymentStorage, email: str) -> Dict:
    payments = storage.get_payments_by_email(email)
    return {
        "email": email,
        "paymentCount": len(payments),
        "payments": [
            {
                "id": p.id,
                "transactionId": p.transaction_id,
                "amount": p.amount,
                "status": p.status,
                "createdAt": _iso(p.created_at),
            }
            for p in payments
        ],
    }


def status_report(storage: PaymentStorage, status: str) -> Dict:
    payments = storage.get_payments_by_status(status)
    return {
        "status": status,
        "count": len(payments),
        "payments": [
            {
                "id": p.id,
                "transactionId": p.transaction_id,
                "amount": p.amount,
                "customerEmail": p.email,
                "createdAt": _iso(p.created_at),
                "updatedAt": _iso(p.updated_at),
            }
            for p in payments
        ],
    }


def _total(payments: List[Payment]) -> Decimal:
    total = Decimal("0")
    for p in payments:
        try:
            total += Decimal(p.amount)
        except InvalidOperation:
            continue
    return total


def payments_summary(storage: PaymentStorage) -> Dict:
    """Admin overview: every payment plus counts per status."""
    payments = storage.get_all_payments()
    counts = Counter(p.status for p in payments)
    completed = [p for p in payments if p.status == PaymentStatus.COMPLETED.value]
    return {
        "count": len(payments),
        "byStatus": {status: counts.get(status, 0) for status in PaymentStatus.values()},
        "totalCompleted": str(_total(completed)),
        "payments": [payment_view(p) for p in payments],
    }
