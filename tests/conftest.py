import pytest

from payform.memory import MemoryStorage
from payform.records import NewPayment
from payform.storage import DatabaseStorage


def make_new_payment(**overrides) -> NewPayment:
    fields = dict(
        transaction_id="TXN-1700000000000-abc123xyz",
        card_number="4111111111111111",
        cvc="123",
        expiry_date="12/30",
        amount="49.99",
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        city="London",
        state="LN",
        postal_code="12345",
    )
    fields.update(overrides)
    return NewPayment(**fields)


@pytest.fixture(params=["memory", "database"])
def storage(request, tmp_path):
    if request.param == "memory":
        yield MemoryStorage()
        return
    db = DatabaseStorage(f"sqlite:///{tmp_path / 'payform.db'}")
    db.init_db()
    yield db
    db.dispose()
