"""Router exposing client records and their subscription information."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..services import (
    ClientAlreadyDeletedError,
    ClientConflictError,
    ClientNotFoundError,
    ClientService,
    ClientServiceError,
    PaymentService,
)

router = APIRouter()


def _get_client_or_404(
    db: Session, client_id: int, *, include_deleted: bool = False
) -> models.Client:
    client = ClientService.get_client(db, client_id, include_deleted=include_deleted)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client


def _client_error_to_http(exc: ClientServiceError) -> HTTPException:
    status_code = (
        status.HTTP_409_CONFLICT
        if isinstance(exc, ClientConflictError)
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=status_code, detail=str(exc))


@router.get("", response_model=schemas.ClientListResponse)
def list_clients(
    search: Optional[str] = Query(None, description="Match on full name or national id"),
    include_deleted: bool = Query(False, description="Include soft-deleted clients"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> schemas.ClientListResponse:
    items, total = ClientService.list_clients(
        db, skip=skip, limit=limit, search=search, include_deleted=include_deleted
    )
    return schemas.ClientListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post("", response_model=schemas.ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(
    client_in: schemas.ClientCreate, db: Session = Depends(get_db)
) -> models.Client:
    """Register a new member."""

    try:
        return ClientService.create_client(db, client_in)
    except ClientServiceError as exc:
        raise _client_error_to_http(exc) from exc


@router.get("/{client_id}", response_model=schemas.ClientRead)
def get_client(
    client_id: int,
    include_deleted: bool = Query(False, description="Return the client even if deleted"),
    db: Session = Depends(get_db),
) -> models.Client:
    return _get_client_or_404(db, client_id, include_deleted=include_deleted)


@router.put("/{client_id}", response_model=schemas.ClientRead)
def update_client(
    client_id: int,
    client_in: schemas.ClientUpdate,
    db: Session = Depends(get_db),
) -> models.Client:
    client = _get_client_or_404(db, client_id)
    try:
        return ClientService.update_client(db, client, client_in)
    except ClientServiceError as exc:
        raise _client_error_to_http(exc) from exc


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(client_id: int, db: Session = Depends(get_db)) -> Response:
    """Soft-delete a client; its payments are kept."""

    client = _get_client_or_404(db, client_id, include_deleted=True)
    try:
        ClientService.delete_client(db, client)
    except ClientAlreadyDeletedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ClientServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{client_id}/subscription-status",
    response_model=schemas.ClientSubscriptionStatus,
)
def get_subscription_status(
    client_id: int,
    reference_date: Optional[date] = Query(
        None, description="Date used to evaluate coverage; defaults to today"
    ),
    db: Session = Depends(get_db),
) -> schemas.ClientSubscriptionStatus:
    """Report whether the client is unpaid, late or up to date."""

    effective_date = reference_date or date.today()
    try:
        client, snapshot = PaymentService.subscription_status(
            db, client_id, reference_date=effective_date
        )
    except ClientNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    latest = snapshot.latest
    return schemas.ClientSubscriptionStatus(
        client_id=client.id,
        reference_date=effective_date,
        status=snapshot.status,
        subscription_period=client.subscription_period,
        current_payment_id=latest.payment_id if latest else None,
        current_payment_date=latest.starts_on if latest else None,
        current_next_payment_date=latest.ends_on if latest else None,
        new_this_month=snapshot.new_this_month,
    )
