from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.audit import PaymentAuditAction
from ..models.payment import NOTES_MAX_LENGTH, PaymentPeriod
from .common import PaginatedResponse

MANUAL_MONTHS_MAX = 1200


def _clean_notes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class PaymentCreate(BaseModel):
    """Raw payment-creation input.

    Exactly one duration source applies, in this order: ``is_day_pass``,
    ``promotion_id``, ``manual_months``, ``subscription_period``.
    """

    client_id: int = Field(..., description="Client receiving the payment")
    amount: Optional[Decimal] = Field(
        default=None,
        description="Amount charged; ignored when a promotion is selected",
    )
    subscription_period: Optional[PaymentPeriod] = Field(
        default=None, description="Requested period, also used as the display label"
    )
    payment_date: Optional[date] = Field(
        default=None, description="Start of coverage; defaults to today"
    )
    promotion_id: Optional[int] = Field(default=None, description="Promotion to apply")
    manual_months: Optional[int] = Field(
        default=None,
        le=MANUAL_MONTHS_MAX,
        description="Explicit number of months when no promotion applies",
    )
    is_day_pass: bool = Field(default=False, description="Single-day coverage")
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)
    recorded_by: Optional[str] = Field(default=None, description="User who captured the payment")

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, value):
        return _clean_notes(value) if isinstance(value, str) else value


class PaymentUpdate(BaseModel):
    """Fields an administrator may correct on an existing payment."""

    amount: Optional[Decimal] = None
    payment_date: Optional[date] = None
    next_payment_date: Optional[date] = None
    subscription_period: Optional[PaymentPeriod] = None
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)
    recorded_by: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, value):
        return _clean_notes(value) if isinstance(value, str) else value


class PaymentPreview(BaseModel):
    """Resolved coverage for a request that was not persisted."""

    client_id: int
    promotion_id: Optional[int] = None
    amount: Decimal
    payment_date: date
    next_payment_date: date
    subscription_period: PaymentPeriod


class PaymentRead(BaseModel):
    id: str
    client_id: int
    promotion_id: Optional[int] = None
    amount: Decimal
    payment_date: date
    next_payment_date: date
    subscription_period: PaymentPeriod
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    is_day_pass: bool = False
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)


class PaymentListResponse(PaginatedResponse[PaymentRead]):
    """Paginated payment listing."""

    pass


class PaymentAuditEntry(BaseModel):
    action: PaymentAuditAction
    performed_at: datetime
    performed_by: Optional[str] = None
    snapshot: Optional[dict] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentDetail(PaymentRead):
    """Payment together with its audit trail."""

    audit_trail: list[PaymentAuditEntry] = Field(default_factory=list)
