from datetime import date

import pytest
from fastapi.testclient import TestClient

from api.payment_api import create_app
from payform.gateway import SimulatedGateway
from payform.memory import MemoryStorage
from payform.pipeline import PaymentPipeline

PAYLOAD = {
    "cardNumber": "4111 1111 1111 1111",
    "cvc": "123",
    "expiryDate": "12/30",
    "amount": "25.00",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "city": "London",
    "state": "LN",
    "postalCode": "12345",
}


def _client(decline_rate=0.0, storage=None):
    storage = storage or MemoryStorage()
    pipeline = PaymentPipeline(
        storage,
        gateway=SimulatedGateway(decline_rate=decline_rate),
        processing_delay=0,
        today=lambda: date(2026, 10, 17),
    )
    return TestClient(create_app(storage=storage, pipeline=pipeline))


@pytest.fixture
def client():
    with _client() as c:
        yield c


def test_health_reports_storage(client):
    r = client.get("/api/health")
    assert r.json() == {"status": "healthy", "storage": "memory"}


def test_submit_payment_ok(client):
    r = client.post("/api/payment", json=PAYLOAD)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["transactionId"].startswith("TXN-")
    assert body["data"] == {
        "amount": "25.00",
        "email": "ada@example.com",
        "name": "Ada Lovelace",
        "status": "completed",
    }


def test_submit_accepts_numeric_amount(client):
    r = client.post("/api/payment", json=dict(PAYLOAD, amount=25))
    assert r.status_code == 200
    assert r.json()["data"]["amount"] == "25"


def test_submit_float_amount_uses_plain_notation(client):
    r = client.post("/api/payment", json=dict(PAYLOAD, amount=1e-07))
    assert r.status_code == 200
    assert r.json()["data"]["amount"] == "0.0000001"


def test_submit_huge_float_amount_is_not_mangled(client):
    r = client.post("/api/payment", json=dict(PAYLOAD, amount=1e21))
    assert r.status_code == 200
    assert r.json()["data"]["amount"] != "121"
    assert r.json()["data"]["amount"].startswith("10000000000")


def test_submit_validation_errors(client):
    r = client.post("/api/payment", json=dict(PAYLOAD, email="", cvc="1"))
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["errors"] == [
        {"field": "cvc", "message": "CVC must be 3-4 digits"},
        {"field": "email", "message": "Email is required"},
    ]


def test_submit_declined():
    with _client(decline_rate=1.0) as c:
        r = c.post("/api/payment", json=PAYLOAD)
        assert r.status_code == 422
        assert r.json()["errors"] == [{"field": "cardNumber", "message": "Card was declined"}]
        report = c.get("/api/payments/status/failed").json()["data"]
        assert report["count"] == 1


def test_submit_storage_failure_is_500():
    class BrokenStorage(MemoryStorage):
        def create_payment(self, new):
            raise RuntimeError("database is down")

    with _client(storage=BrokenStorage()) as c:
        r = c.post("/api/payment", json=PAYLOAD)
        assert r.status_code == 500
        assert "database is down" not in r.text


def test_malformed_body_is_400(client):
    r = client.post("/api/payment", content="not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_lookup_by_transaction_id(client):
    tid = client.post("/api/payment", json=PAYLOAD).json()["transactionId"]
    r = client.get(f"/api/payment/{tid}")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["transactionId"] == tid
    assert data["customerName"] == "Ada Lovelace"
    assert "cardNumber" not in data


def test_lookup_missing_is_404(client):
    assert client.get("/api/payment/TXN-0-missing").status_code == 404


def test_customer_history_case_insensitive(client):
    client.post("/api/payment", json=PAYLOAD)
    client.post("/api/payment", json=PAYLOAD)
    r = client.get("/api/payments/customer/ADA@example.com")
    data = r.json()["data"]
    assert data["email"] == "ada@example.com"
    assert data["paymentCount"] == 2


def test_status_update(client):
    pid = client.post("/api/payment", json=PAYLOAD).json()["paymentId"]
    r = client.patch(f"/api/payment/{pid}/status", json={"status": "refunded"})
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "refunded"


def test_status_update_rejects_unknown_status(client):
    pid = client.post("/api/payment", json=PAYLOAD).json()["paymentId"]
    assert client.patch(f"/api/payment/{pid}/status", json={"status": "archived"}).status_code == 400
    assert client.patch("/api/payment/999/status", json={"status": "archived"}).status_code == 400


def test_status_update_bad_id_and_missing(client):
    assert client.patch("/api/payment/abc/status", json={"status": "failed"}).status_code == 400
    assert client.patch("/api/payment/999/status", json={"status": "failed"}).status_code == 404


def test_delete_twice(client):
    created = client.post("/api/payment", json=PAYLOAD).json()
    pid = created["paymentId"]
    r = client.delete(f"/api/payment/{pid}")
    assert r.status_code == 200
    assert r.json()["data"] == {"deletedId": pid, "transactionId": created["transactionId"]}
    assert client.delete(f"/api/payment/{pid}").status_code == 404


def test_delete_never_created_and_bad_id(client):
    assert client.delete("/api/payment/12345").status_code == 404
    assert client.delete("/api/payment/abc").status_code == 400


def test_summary_lists_payments(client):
    client.post("/api/payment", json=PAYLOAD)
    data = client.get("/api/payments").json()["data"]
    assert data["count"] == 1
    assert data["byStatus"]["completed"] == 1
    assert data["totalCompleted"] == "25.00"
