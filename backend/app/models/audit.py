"""Audit trail models for payment history."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, JSON, String, Text, func
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID


class PaymentAuditAction(str, enum.Enum):
    """Actions recorded in the payment audit log."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class PaymentAuditLog(Base):
    """Stores audit entries for payment operations."""

    __tablename__ = "payment_audit_log"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    payment_id = Column(
        GUID(),
        ForeignKey("payments.payment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action = Column(
        Enum(
            PaymentAuditAction,
            name="payment_audit_action_enum",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    performed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    performed_by = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    snapshot = Column(JSON, nullable=True)

    payment = relationship("Payment", back_populates="audit_trail")
