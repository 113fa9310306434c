"""Helpers to persist validation outcomes of the payment flow."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from .. import models

LOGGER = logging.getLogger(__name__)


class MetricOutcome:
    SUCCESS = "success"
    REJECTED = "rejected"
    ERROR = "error"


class ObservabilityService:
    """Records metric events in their own session so a rollback keeps them."""

    @staticmethod
    def record_event(
        db: Session,
        event_type: str,
        outcome: str,
        *,
        duration_ms: float | None = None,
        tags: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        event = models.OperationalMetricEvent(
            event_type=event_type,
            outcome=outcome,
            duration_ms=Decimal(f"{duration_ms:.3f}") if duration_ms is not None else None,
            tags=tags or {},
            details=details or None,
        )
        try:
            with Session(bind=db.get_bind()) as metrics_session:
                metrics_session.add(event)
                metrics_session.commit()
        except Exception:  # pragma: no cover - metrics failures must not break payments
            LOGGER.exception("Failed to persist metric event %s", event_type)

    @classmethod
    def record_rejection(
        cls,
        db: Session,
        event_type: str,
        *,
        kind: str,
        reason: str,
        tags: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        cls.record_event(
            db,
            event_type,
            MetricOutcome.REJECTED,
            duration_ms=duration_ms,
            tags={"kind": kind, **(tags or {})},
            details={"rejection_reason": reason},
        )
