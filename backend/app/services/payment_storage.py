"""SQLAlchemy adapter feeding the subscription-period engine."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from .subscription_periods import CoverageInterval, PromotionTerms


def interval_from_payment(payment: models.Payment) -> CoverageInterval:
    return CoverageInterval(
        starts_on=payment.payment_date,
        ends_on=payment.next_payment_date,
        payment_id=str(payment.id),
    )


def terms_from_promotion(promotion: models.Promotion) -> PromotionTerms:
    return PromotionTerms(
        id=promotion.id,
        fixed_price=Decimal(promotion.fixed_price),
        subscription_months=promotion.subscription_months,
        active=bool(promotion.active),
        starts_on=promotion.start_date,
        ends_on=promotion.end_date,
    )


class SqlAlchemySubscriptionStorage:
    """Reads client coverage and promotions through an open session."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def list_active_intervals_for_client(self, client_id: int) -> list[CoverageInterval]:
        payments = (
            self._db.query(models.Payment)
            .filter(
                models.Payment.client_id == client_id,
                models.Payment.is_deleted.is_(False),
            )
            .order_by(models.Payment.payment_date.asc())
            .all()
        )
        return [interval_from_payment(payment) for payment in payments]

    def get_promotion(self, promotion_id: int) -> Optional[PromotionTerms]:
        promotion = (
            self._db.query(models.Promotion)
            .filter(
                models.Promotion.id == promotion_id,
                models.Promotion.is_deleted.is_(False),
            )
            .first()
        )
        if promotion is None:
            return None
        return terms_from_promotion(promotion)
