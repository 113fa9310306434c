"""SQLAlchemy model definitions for client payments."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID

NOTES_MAX_LENGTH = 75


class PaymentPeriod(str, enum.Enum):
    """Subscription periods a payment can be labelled with."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


class SubscriptionStatus(str, enum.Enum):
    """Coverage state of a client on a given day."""

    UNPAID = "UNPAID"
    LATE = "LATE"
    UP_TO_DATE = "UP_TO_DATE"


PAYMENT_PERIOD_ENUM = Enum(
    PaymentPeriod,
    name="payment_period_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    validate_strings=True,
)


class Payment(Base):
    """A payment covering the half-open interval [payment_date, next_payment_date)."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "next_payment_date > payment_date", name="ck_payments_valid_interval"
        ),
        Index("payments_client_active_idx", "client_id", "is_deleted", "payment_date"),
    )

    id = Column("payment_id", GUID(), primary_key=True, default=uuid.uuid4)
    client_id = Column(
        Integer,
        ForeignKey("clients.client_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    promotion_id = Column(
        Integer,
        ForeignKey("promotions.promotion_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    amount = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    next_payment_date = Column(Date, nullable=False)
    subscription_period = Column(PAYMENT_PERIOD_ENUM, nullable=False)
    notes = Column(String(NOTES_MAX_LENGTH), nullable=True)
    recorded_by = Column(String, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    client = relationship("Client", back_populates="payments")
    promotion = relationship("Promotion", back_populates="payments")
    audit_trail = relationship(
        "PaymentAuditLog",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentAuditLog.performed_at",
    )

    @property
    def is_day_pass(self) -> bool:
        if self.payment_date is None or self.next_payment_date is None:
            return False
        return (self.next_payment_date - self.payment_date).days == 1
