"""Router for the promotion catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import PromotionService, PromotionServiceError

router = APIRouter()


def _get_promotion_or_404(db: Session, promotion_id: int) -> models.Promotion:
    promotion = PromotionService.get_promotion(db, promotion_id)
    if promotion is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion not found")
    return promotion


@router.get("", response_model=schemas.PromotionListResponse)
def list_promotions(
    active_only: bool = Query(False, description="Only return active promotions"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> schemas.PromotionListResponse:
    items, total = PromotionService.list_promotions(
        db, active_only=active_only, skip=skip, limit=limit
    )
    return schemas.PromotionListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post("", response_model=schemas.PromotionRead, status_code=status.HTTP_201_CREATED)
def create_promotion(
    promotion_in: schemas.PromotionCreate, db: Session = Depends(get_db)
) -> models.Promotion:
    try:
        return PromotionService.create_promotion(db, promotion_in)
    except PromotionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{promotion_id}", response_model=schemas.PromotionRead)
def get_promotion(promotion_id: int, db: Session = Depends(get_db)) -> models.Promotion:
    return _get_promotion_or_404(db, promotion_id)


@router.put("/{promotion_id}", response_model=schemas.PromotionRead)
def update_promotion(
    promotion_id: int,
    promotion_in: schemas.PromotionUpdate,
    db: Session = Depends(get_db),
) -> models.Promotion:
    promotion = _get_promotion_or_404(db, promotion_id)
    try:
        return PromotionService.update_promotion(db, promotion, promotion_in)
    except PromotionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/{promotion_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_promotion(promotion_id: int, db: Session = Depends(get_db)) -> Response:
    """Delete a promotion, keeping it as soft-deleted when payments reference it."""

    promotion = _get_promotion_or_404(db, promotion_id)
    try:
        PromotionService.delete_promotion(db, promotion)
    except PromotionServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
