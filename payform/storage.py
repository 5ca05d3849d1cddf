from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, UTC
from typing import List, Optional

from sqlalchemy import create_engine, func, Column, Integer, String, DateTime, Text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

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

Base = declarative_base()

USER_FIELDS = frozenset({"username", "password"})


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)


class PaymentRow(Base):
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}
    id = Column(Integer, primary_key=True)
    transaction_id = Column("transactionId", String, nullable=False, unique=True, index=True)
    card_number = Column("cardNumber", String(20), nullable=False)
    cvc = Column(String(20), nullable=False)
    expiry_date = Column("expiryDate", String(5), nullable=False)
    amount = Column(String(20), nullable=False)
    first_name = Column("firstName", String(255), nullable=False)
    last_name = Column("lastName", String(255), nullable=False)
    email = Column(String(254), nullable=False, index=True)
    city = Column(String(255), nullable=False)
    state = Column(String(255), nullable=False)
    postal_code = Column("postalCode", String(20), nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    created_at = Column(
        "createdAt", DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at = Column(
        "updatedAt", DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops the offset; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_user(row: Optional[UserRow]) -> Optional[User]:
    if row is None:
        return None
    return User(id=row.id, username=row.username, password=row.password)


def _to_payment(row: Optional[PaymentRow]) -> Optional[Payment]:
    if row is None:
        return None
    return Payment(
        id=row.id,
        transaction_id=row.transaction_id,
        card_number=row.card_number,
        cvc=row.cvc,
        expiry_date=row.expiry_date,
        amount=row.amount,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        city=row.city,
        state=row.state,
        postal_code=row.postal_code,
        message=row.message,
        status=row.status,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


class DatabaseStorage(PaymentStorage):
    """Storage backed by the users and payments tables of a SQL database."""

    kind = "database"

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.engine = create_engine(database_url, echo=echo, future=True)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False)

    def init_db(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    # users

    def create_user(self, username: str, password: str) -> User:
        logger.info("CREATE User: %s", username)
        with self.SessionLocal() as db:
            row = UserRow(username=username, password=password)
            db.add(row)
            self._commit(db, f"username {username!r} already exists")
            db.refresh(row)
            return _to_user(row)

    def get_user(self, user_id: int) -> Optional[User]:
        logger.info("READ User by ID: %s", user_id)
        with self.SessionLocal() as db:
            return _to_user(db.get(UserRow, user_id))

    def get_user_by_username(self, username: str) -> Optional[User]:
        logger.info("READ User by username: %s", username)
        with self.SessionLocal() as db:
            return _to_user(db.query(UserRow).filter(UserRow.username == username).first())

    def update_user(self, user_id: int, **changes) -> Optional[User]:
        unknown = set(changes) - USER_FIELDS
        if unknown:
            raise ValueError(f"unknown user fields: {sorted(unknown)}")
        logger.info("UPDATE User ID: %s", user_id)
        with self.SessionLocal() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            self._commit(db, f"username {changes.get('username')!r} already exists")
            db.refresh(row)
            return _to_user(row)

    def delete_user(self, user_id: int) -> bool:
        logger.info("DELETE User ID: %s", user_id)
        with self.SessionLocal() as db:
            deleted = db.query(UserRow).filter(UserRow.id == user_id).delete()
            db.commit()
            return deleted > 0

    # payments

    def create_payment(self, new: NewPayment) -> Payment:
        logger.info("CREATE Payment: %s", new.transaction_id)
        fields = asdict(new)
        fields.update(
            card_number=mask_card_number(new.card_number),
            message=new.message or None,
            status=check_payment_changes({"status": new.status})["status"],
        )
        now = datetime.now(UTC)
        with self.SessionLocal() as db:
            row = PaymentRow(created_at=now, updated_at=now, **fields)
            db.add(row)
            self._commit(db, f"transaction {new.transaction_id!r} already exists")
            db.refresh(row)
            return _to_payment(row)

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        logger.info("READ Payment by ID: %s", payment_id)
        with self.SessionLocal() as db:
            return _to_payment(db.get(PaymentRow, payment_id))

    def get_payment_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        logger.info("READ Payment by transaction: %s", transaction_id)
        with self.SessionLocal() as db:
            row = db.query(PaymentRow).filter(PaymentRow.transaction_id == transaction_id).first()
            return _to_payment(row)

    def update_payment(self, payment_id: int, **changes) -> Optional[Payment]:
        changes = check_payment_changes(changes)
        logger.info("UPDATE Payment ID: %s", payment_id)
        with self.SessionLocal() as db:
            row = db.get(PaymentRow, payment_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = datetime.now(UTC)
            db.commit()
            db.refresh(row)
            return _to_payment(row)

    def delete_payment(self, payment_id: int) -> bool:
        logger.info("DELETE Payment ID: %s", payment_id)
        with self.SessionLocal() as db:
            deleted = db.query(PaymentRow).filter(PaymentRow.id == payment_id).delete()
            db.commit()
            return deleted > 0

    def get_all_payments(self) -> List[Payment]:
        logger.info("READ All Payments")
        with self.SessionLocal() as db:
            return [_to_payment(row) for row in db.query(PaymentRow).all()]

    def get_payments_by_email(self, email: str) -> List[Payment]:
        logger.info("READ Payments by email: %s", email)
        with self.SessionLocal() as db:
            rows = db.query(PaymentRow).filter(func.lower(PaymentRow.email) == email.lower())
            return [_to_payment(row) for row in rows.all()]

    def get_payments_by_status(self, status: str) -> List[Payment]:
        logger.info("READ Payments by status: %s", status)
        with self.SessionLocal() as db:
            rows = db.query(PaymentRow).filter(PaymentRow.status == status)
            return [_to_payment(row) for row in rows.all()]

    @staticmethod
    def _commit(db, conflict_message: str) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateKeyError(conflict_message) from exc
