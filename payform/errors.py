from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from payform.records import Payment
    from payform.validation import FieldError


class PayformError(Exception):
    """Base class for errors raised by the payment service."""


class ValidationFailed(PayformError):
    def __init__(self, errors: "List[FieldError]"):
        super().__init__(", ".join(e.message for e in errors))
        self.errors = errors


class PaymentDeclined(PayformError):
    """The simulated gateway rejected the card; the record is already marked failed."""

    def __init__(self, payment: "Payment"):
        super().__init__(f"payment {payment.transaction_id} was declined")
        self.payment = payment


class MalformedRequest(PayformError):
    pass


class DuplicateKeyError(PayformError):
    """A unique username or transaction id already exists in the backend."""
