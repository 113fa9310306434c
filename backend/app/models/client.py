"""SQLAlchemy model definitions for gym clients."""

from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from ..database import Base
from .payment import PAYMENT_PERIOD_ENUM


class Client(Base):
    """Represents a gym member."""

    __tablename__ = "clients"

    id = Column("client_id", Integer, primary_key=True, autoincrement=True)
    full_name = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    national_id = Column(String, nullable=True, unique=True)
    date_of_birth = Column(Date, nullable=True)
    registration_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    subscription_period = Column(
        PAYMENT_PERIOD_ENUM,
        nullable=True,
        comment="Mirror of the latest payment's period; not used for validation",
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    payments = relationship(
        "Payment",
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


Index("clients_full_name_idx", Client.full_name)
