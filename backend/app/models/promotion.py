"""SQLAlchemy model for promotions offered to clients."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base


class Promotion(Base):
    """Administrator-defined offer fixing price and optionally the duration."""

    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint("fixed_price > 0", name="ck_promotions_price_positive"),
        CheckConstraint(
            "subscription_months IS NULL OR subscription_months > 0",
            name="ck_promotions_months_positive",
        ),
        CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="ck_promotions_valid_window",
        ),
    )

    id = Column("promotion_id", Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    fixed_price = Column(Numeric(10, 2), nullable=False)
    subscription_months = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    payments = relationship("Payment", back_populates="promotion")
