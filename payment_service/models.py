from sqlalchemy import Column, String, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
from uuid import uuid4
import enum

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class PaymentStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        # Authoritative duplicate guard for concurrent charges sharing a key
        UniqueConstraint("idempotency_key", name="uq_payments_idempotency_key"),
    )

    payment_id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(100), index=True, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(
        Enum(PaymentStatus, name="payment_status", native_enum=False, length=16),
        nullable=False,
    )
    payment_method = Column(String(50), nullable=False)
    idempotency_key = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)


class Refund(Base):
    __tablename__ = "refunds"

    refund_id = Column(String(36), primary_key=True, default=new_id)
    payment_id = Column(
        String(36), ForeignKey("payments.payment_id", ondelete="RESTRICT"), index=True, nullable=False
    )
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
