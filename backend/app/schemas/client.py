from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.payment import NOTES_MAX_LENGTH, PaymentPeriod, SubscriptionStatus
from .common import PaginatedResponse

FULL_NAME_MAX_LENGTH = 80


class ClientBase(BaseModel):
    """Attributes shared by create and read operations."""

    full_name: str = Field(..., max_length=FULL_NAME_MAX_LENGTH)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = Field(default=None, max_length=120)
    phone: Optional[str] = None
    national_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    registration_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)


class ClientCreate(ClientBase):
    """Schema used when registering a new member."""


class ClientUpdate(BaseModel):
    """Schema used when correcting a member's data; unset fields are left alone."""

    full_name: Optional[str] = Field(default=None, max_length=FULL_NAME_MAX_LENGTH)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = Field(default=None, max_length=120)
    phone: Optional[str] = None
    national_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    registration_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)


class ClientRead(ClientBase):
    id: int
    subscription_period: Optional[PaymentPeriod] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ClientListResponse(PaginatedResponse[ClientRead]):
    pass


class ClientSubscriptionStatus(BaseModel):
    """Coverage state of a client on a reference date."""

    client_id: int
    reference_date: date
    status: SubscriptionStatus
    subscription_period: Optional[PaymentPeriod] = None
    current_payment_id: Optional[str] = None
    current_payment_date: Optional[date] = None
    current_next_payment_date: Optional[date] = None
    new_this_month: bool = False
