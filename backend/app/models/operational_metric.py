"""Models used to capture validation outcomes of the payment flow."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, JSON, Numeric, String, func

from ..database import Base
from ..db_types import GUID


class OperationalMetricEvent(Base):
    """One recorded outcome (accepted, rejected, failed) of a tracked operation."""

    __tablename__ = "operational_metric_events"

    id = Column("event_id", GUID(), primary_key=True, default=uuid.uuid4)
    event_type = Column(String(120), nullable=False, index=True)
    outcome = Column(String(32), nullable=False, index=True)
    duration_ms = Column(Numeric(14, 3), nullable=True)
    tags = Column("labels", JSON, nullable=False, default=dict)
    details = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
