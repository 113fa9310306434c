"""Schemas for the promotion catalog."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import PaginatedResponse


class PromotionBase(BaseModel):
    name: str = Field(..., min_length=1, description="Name shown to staff")
    notes: Optional[str] = None
    fixed_price: Decimal = Field(..., gt=0, description="Price charged for the promotion")
    subscription_months: Optional[int] = Field(
        default=None, gt=0, description="Months covered; falls back to the requested period"
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    active: bool = True

    @model_validator(mode="after")
    def validate_window(self):
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("name is required")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date cannot be after end_date")
        return self


class PromotionCreate(PromotionBase):
    pass


class PromotionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    fixed_price: Optional[Decimal] = Field(default=None, gt=0)
    subscription_months: Optional[int] = Field(default=None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    active: Optional[bool] = None


class PromotionRead(PromotionBase):
    id: int
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PromotionListResponse(PaginatedResponse[PromotionRead]):
    pass
