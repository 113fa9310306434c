"""Router exposing payment related operations."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import (
    ClientNotFoundError,
    PaymentAlreadyDeletedError,
    PaymentRejection,
    PaymentService,
    PaymentServiceError,
    RejectionKind,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _rejection_to_http(exc: PaymentRejection) -> HTTPException:
    status_code = (
        status.HTTP_409_CONFLICT
        if exc.kind == RejectionKind.OVERLAP_CONFLICT
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=status_code, detail=exc.as_dict())


def _get_payment_or_404(db: Session, payment_id: str) -> models.Payment:
    payment = PaymentService.get_payment(db, payment_id)
    if payment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment


@router.get("", response_model=schemas.PaymentListResponse)
def list_payments(
    db: Session = Depends(get_db),
    client_id: Optional[int] = Query(None, description="Filter by client"),
    start_date: Optional[date] = Query(None, description="Earliest payment_date"),
    end_date: Optional[date] = Query(None, description="Latest payment_date"),
    include_deleted: bool = Query(False, description="Include soft-deleted payments"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> schemas.PaymentListResponse:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date cannot be after end_date",
        )

    items, total = PaymentService.list_payments(
        db,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
        include_deleted=include_deleted,
        skip=skip,
        limit=limit,
    )
    return schemas.PaymentListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post(
    "",
    response_model=schemas.PaymentRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": schemas.RejectionDetail},
        409: {"model": schemas.RejectionDetail},
    },
)
def create_payment(
    payment_in: schemas.PaymentCreate, db: Session = Depends(get_db)
) -> models.Payment:
    """Record a payment after resolving its coverage and checking for overlaps."""

    try:
        return PaymentService.create_payment(db, payment_in)
    except PaymentRejection as exc:
        raise _rejection_to_http(exc) from exc
    except ClientNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PaymentServiceError as exc:
        LOGGER.error("Unable to record payment for client %s", payment_in.client_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc


@router.post("/preview", response_model=schemas.PaymentPreview)
def preview_payment(
    payment_in: schemas.PaymentCreate, db: Session = Depends(get_db)
) -> schemas.PaymentPreview:
    """Return the coverage a payment would receive without recording it."""

    try:
        decision = PaymentService.preview_payment(db, payment_in)
    except PaymentRejection as exc:
        raise _rejection_to_http(exc) from exc
    except ClientNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return schemas.PaymentPreview(
        client_id=decision.client_id,
        promotion_id=decision.promotion_id,
        amount=decision.amount,
        payment_date=decision.payment_date,
        next_payment_date=decision.next_payment_date,
        subscription_period=decision.period_label,
    )


@router.get("/{payment_id}", response_model=schemas.PaymentDetail)
def get_payment(payment_id: str, db: Session = Depends(get_db)) -> models.Payment:
    return _get_payment_or_404(db, payment_id)


@router.put("/{payment_id}", response_model=schemas.PaymentRead)
def update_payment(
    payment_id: str,
    payment_in: schemas.PaymentUpdate,
    db: Session = Depends(get_db),
) -> models.Payment:
    payment = _get_payment_or_404(db, payment_id)
    try:
        return PaymentService.update_payment(db, payment, payment_in)
    except PaymentRejection as exc:
        raise _rejection_to_http(exc) from exc
    except PaymentAlreadyDeletedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PaymentServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    performed_by: Optional[str] = Query(None, description="User deleting the payment"),
) -> Response:
    payment = _get_payment_or_404(db, payment_id)
    try:
        PaymentService.delete_payment(db, payment, performed_by=performed_by)
    except PaymentAlreadyDeletedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PaymentServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
