"""Business logic for the promotion catalog."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas

LOGGER = logging.getLogger(__name__)


class PromotionServiceError(RuntimeError):
    """Raised when operations on promotions fail."""


class PromotionService:
    """Create, edit and retire promotions.

    A promotion referenced by at least one payment is only ever soft-deleted so
    historical payments keep pointing at it.
    """

    @staticmethod
    def list_promotions(
        db: Session,
        *,
        active_only: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[list[models.Promotion], int]:
        query = db.query(models.Promotion).filter(models.Promotion.is_deleted.is_(False))
        if active_only:
            query = query.filter(models.Promotion.active.is_(True))

        total = query.count()
        items = (
            query.order_by(models.Promotion.created_at.desc(), models.Promotion.id.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_promotion(db: Session, promotion_id: int) -> Optional[models.Promotion]:
        return (
            db.query(models.Promotion)
            .filter(
                models.Promotion.id == promotion_id,
                models.Promotion.is_deleted.is_(False),
            )
            .first()
        )

    @staticmethod
    def create_promotion(db: Session, data: schemas.PromotionCreate) -> models.Promotion:
        promotion = models.Promotion(
            name=data.name,
            notes=data.notes.strip() if data.notes and data.notes.strip() else None,
            fixed_price=data.fixed_price,
            subscription_months=data.subscription_months,
            start_date=data.start_date,
            end_date=data.end_date,
            active=data.active,
            is_deleted=False,
        )
        db.add(promotion)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PromotionServiceError("Unable to create promotion") from exc
        db.refresh(promotion)
        LOGGER.info("Promotion created", extra={"promotion_id": promotion.id})
        return promotion

    @staticmethod
    def update_promotion(
        db: Session, promotion: models.Promotion, data: schemas.PromotionUpdate
    ) -> models.Promotion:
        changes = data.model_dump(exclude_unset=True)

        start_date = changes.get("start_date", promotion.start_date)
        end_date = changes.get("end_date", promotion.end_date)
        if start_date and end_date and start_date > end_date:
            raise PromotionServiceError("start_date cannot be after end_date")
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise PromotionServiceError("name is required")
            changes["name"] = name
        if "fixed_price" in changes and changes["fixed_price"] is None:
            raise PromotionServiceError("fixed_price is required")

        for field, value in changes.items():
            setattr(promotion, field, value)

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PromotionServiceError("Unable to update promotion") from exc
        db.refresh(promotion)
        return promotion

    @staticmethod
    def delete_promotion(db: Session, promotion: models.Promotion) -> bool:
        """Remove a promotion; returns ``True`` when it was only soft-deleted."""

        promotion_id = promotion.id
        referenced = (
            db.query(models.Payment.id)
            .filter(models.Payment.promotion_id == promotion_id)
            .first()
            is not None
        )
        try:
            if referenced:
                promotion.is_deleted = True
                promotion.active = False
                promotion.deleted_at = datetime.now(timezone.utc)
            else:
                db.delete(promotion)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PromotionServiceError("Unable to delete promotion") from exc

        LOGGER.info(
            "Promotion removed",
            extra={"promotion_id": promotion_id, "soft_deleted": referenced},
        )
        return referenced
