import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from payform.backend import create_storage
from payform.config import load_settings
from payform.errors import MalformedRequest, PaymentDeclined, ValidationFailed
from payform.gateway import SimulatedGateway
from payform.logs import RequestLoggingMiddleware, configure_logging
from payform.pipeline import PaymentPipeline
from payform.records import PaymentStatus, PaymentStorage
from payform.reports import customer_history, find_payment, payments_summary, status_report
from payform.sanitize import sanitize_email, sanitize_text

logger = logging.getLogger(__name__)


class PaymentForm(BaseModel):
    cardNumber: str = ""
    cvc: str = ""
    expiryDate: str = ""
    amount: str = ""
    firstName: str = ""
    lastName: str = ""
    email: str = ""
    city: str = ""
    state: str = ""
    postalCode: str = ""
    message: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> Any:
        if v is None or isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float):
            # Plain notation; "1e+21" would otherwise sanitize to "121".
            return format(Decimal(str(v)), "f")
        return v


class StatusUpdate(BaseModel):
    status: Optional[str] = None


def _error(status_code: int, message: str, errors: Optional[List[Dict]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise MalformedRequest("Invalid payment ID")


def _parse_status(raw: Optional[str]) -> str:
    status = sanitize_text(raw)
    if status not in PaymentStatus.values():
        raise MalformedRequest(
            "Invalid status. Must be one of: " + ", ".join(PaymentStatus.values())
        )
    return status


def get_storage(request: Request) -> PaymentStorage:
    return request.app.state.storage


def get_pipeline(request: Request) -> PaymentPipeline:
    return request.app.state.pipeline


def create_app(
    storage: Optional[PaymentStorage] = None,
    pipeline: Optional[PaymentPipeline] = None,
) -> FastAPI:
    """Build the payment API around one storage backend.

    Routes are ``async def`` so storage is only ever called from the event
    loop thread, which is what keeps MemoryStorage safe without locks. The
    cost is that DatabaseStorage queries are synchronous and block the loop
    for their duration; the simulated processing delay does not.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = load_settings()
        configure_logging(settings.log_level)
        app.state.storage = storage or create_storage(settings.database_url)
        app.state.pipeline = pipeline or PaymentPipeline(
            app.state.storage,
            gateway=SimulatedGateway(decline_rate=settings.decline_rate),
            processing_delay=settings.processing_delay,
        )
        logger.info("Payment API started with %s storage", app.state.storage.kind)
        yield
        dispose = getattr(app.state.storage, "dispose", None)
        if dispose:
            dispose()

    app = FastAPI(title="Payform Payment API", lifespan=lifespan)
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(RequestValidationError)
    async def malformed_body(request: Request, exc: RequestValidationError):
        logger.info("Malformed request to %s: %s", request.url.path, exc.errors())
        return _error(400, "Malformed request")

    @app.get("/api/health")
    async def health(storage: PaymentStorage = Depends(get_storage)):
        return {"status": "healthy", "storage": storage.kind}

    @app.post("/api/payment")
    async def submit_payment(form: PaymentForm, pipeline: PaymentPipeline = Depends(get_pipeline)):
        try:
            receipt = await pipeline.submit(form.model_dump())
        except ValidationFailed as exc:
            return _error(400, "Validation failed", [e.to_json() for e in exc.errors])
        except PaymentDeclined:
            return _error(
                422,
                "Payment could not be processed. Please try again or use a different payment method.",
                [{"field": "cardNumber", "message": "Card was declined"}],
            )
        except Exception:
            logger.exception("Payment processing error")
            return _error(
                500,
                "Internal server error. Please try again later.",
                [{"field": "general", "message": "Server error occurred"}],
            )
        return receipt.to_json()

    @app.get("/api/payment/{transaction_id}")
    async def get_payment(transaction_id: str, storage: PaymentStorage = Depends(get_storage)):
        try:
            view = find_payment(storage, sanitize_text(transaction_id))
        except Exception:
            logger.exception("Payment lookup error")
            return _error(500, "Error retrieving payment information")
        if view is None:
            return _error(404, "Payment not found")
        return {"success": True, "data": view}

    @app.get("/api/payments")
    async def list_payments(storage: PaymentStorage = Depends(get_storage)):
        try:
            return {"success": True, "data": payments_summary(storage)}
        except Exception:
            logger.exception("Payment summary error")
            return _error(500, "Error retrieving payments")

    @app.get("/api/payments/customer/{email}")
    async def get_customer_payments(email: str, storage: PaymentStorage = Depends(get_storage)):
        try:
            return {"success": True, "data": customer_history(storage, sanitize_email(email))}
        except Exception:
            logger.exception("Customer payments lookup error")
            return _error(500, "Error retrieving customer payments")

    @app.get("/api/payments/status/{status}")
    async def get_payments_by_status(status: str, storage: PaymentStorage = Depends(get_storage)):
        try:
            return {"success": True, "data": status_report(storage, sanitize_text(status))}
        except Exception:
            logger.exception("Status report error")
            return _error(500, "Error generating status report")

    @app.patch("/api/payment/{payment_id}/status")
    async def update_payment_status(
        payment_id: str,
        body: StatusUpdate,
        storage: PaymentStorage = Depends(get_storage),
    ):
        try:
            pid = _parse_id(payment_id)
            status = _parse_status(body.status)
            payment = storage.update_payment(pid, status=status)
        except MalformedRequest as exc:
            return _error(400, str(exc))
        except Exception:
            logger.exception("Payment status update error")
            return _error(500, "Error updating payment status")
        if payment is None:
            return _error(404, "Payment not found")
        return {
            "success": True,
            "message": f"Payment status updated to {status}",
            "data": {
                "id": payment.id,
                "transactionId": payment.transaction_id,
                "status": payment.status,
                "updatedAt": payment.updated_at.isoformat(),
            },
        }

    @app.delete("/api/payment/{payment_id}")
    async def delete_payment(payment_id: str, storage: PaymentStorage = Depends(get_storage)):
        try:
            pid = _parse_id(payment_id)
            existing = storage.get_payment(pid)
            if existing is None:
                return _error(404, "Payment not found")
            deleted = storage.delete_payment(pid)
        except MalformedRequest as exc:
            return _error(400, str(exc))
        except Exception:
            logger.exception("Payment deletion error")
            return _error(500, "Error deleting payment record")
        if not deleted:
            return _error(404, "Payment not found")
        return {
            "success": True,
            "message": "Payment record deleted successfully",
            "data": {"deletedId": pid, "transactionId": existing.transaction_id},
        }

    return app


app = create_app()


if __name__ == "__main__":
    settings = load_settings()
    uvicorn.run("api.payment_api:app", host=settings.host, port=settings.port, reload=True)
