"""Shared schema definitions."""

from __future__ import annotations

from datetime import date
from typing import Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard shape for paginated listings."""

    items: Sequence[T]
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    skip: int = Field(..., ge=0)


class ConflictingPayment(BaseModel):
    payment_id: Optional[str] = None
    payment_date: date
    next_payment_date: date


class RejectionDetail(BaseModel):
    """Body of the ``detail`` field returned when a payment is refused."""

    kind: str = Field(..., description="Machine-readable rejection kind")
    message: str
    conflict: Optional[ConflictingPayment] = None
