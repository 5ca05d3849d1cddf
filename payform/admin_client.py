import requests

from payform.config import load_settings

TIMEOUT = 10


def _base() -> str:
    return load_settings().api_url


def _normalize_transaction_id(transaction_id: str) -> str:
    cleaned = "".join(transaction_id.split())
    if cleaned[:4].lower() == "txn-":
        cleaned = "TXN-" + cleaned[4:]
    return cleaned


def _require(value, name: str):
    if value in (None, ""):
        raise ValueError(f"{name} is required")
    return value


def _data_or_none(r: requests.Response):
    if r.status_code == 404:
        return None
    r.raise_for_status()
    return r.json()["data"]


def get_payment_summary(transaction_id: str):
    tid = _normalize_transaction_id(_require(transaction_id, "transaction_id"))
    r = requests.get(f"{_base()}/api/payment/{tid}", timeout=TIMEOUT)
    p = _data_or_none(r)
    if p is None:
        return None
    return {
        "id": p["id"],
        "transaction_id": p["transactionId"],
        "customer": p["customerName"],
        "amount_readable": f"${float(p['amount']):,.2f}",
        "status": p["status"],
    }


def get_customer_history(email: str):
    _require(email, "email")
    r = requests.get(f"{_base()}/api/payments/customer/{email.strip().lower()}", timeout=TIMEOUT)
    r.raise_for_status()
    return r.json()["data"]


def get_status_report(status: str):
    _require(status, "status")
    r = requests.get(f"{_base()}/api/payments/status/{status}", timeout=TIMEOUT)
    r.raise_for_status()
    return r.json()["data"]


def get_summary():
    r = requests.get(f"{_base()}/api/payments", timeout=TIMEOUT)
    r.raise_for_status()
    return r.json()["data"]


def set_payment_status(payment_id: int, status: str):
    _require(status, "status")
    r = requests.patch(
        f"{_base()}/api/payment/{int(payment_id)}/status", json={"status": status}, timeout=TIMEOUT
    )
    return _data_or_none(r)


def refund_payment(payment_id: int):
    return set_payment_status(payment_id, "refunded")


def delete_payment(payment_id: int):
    r = requests.delete(f"{_base()}/api/payment/{int(payment_id)}", timeout=TIMEOUT)
    return _data_or_none(r)


ADMIN_FUNCTIONS = {
    "get_payment_summary": get_payment_summary,
    "get_customer_history": get_customer_history,
    "get_status_report": get_status_report,
    "get_summary": get_summary,
    "set_payment_status": set_payment_status,
    "refund_payment": refund_payment,
    "delete_payment": delete_payment,
}
