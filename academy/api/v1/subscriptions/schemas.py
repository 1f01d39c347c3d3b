from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from academy.core.enums import SubscriptionStatus


class SubscriptionCreate(BaseModel):
    """Payload to create a billing plan."""

    name: str = Field(..., min_length=1, max_length=255)
    hourly_rate: Decimal = Field(..., ge=0, decimal_places=2)
    hours_per_month: int = Field(0, ge=0)
    max_free_absences: int = Field(0, ge=0)
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    # ISO 4217; defaults to settings.default_currency
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class SubscriptionResponse(BaseModel):
    id: UUID
    name: str
    hourly_rate: Decimal
    hours_per_month: int
    max_free_absences: int
    total_amount: Optional[Decimal] = None
    currency: str
    superseded_by_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StudentSubscriptionActivate(BaseModel):
    student_id: UUID
    subscription_id: UUID
    start_date: date
    end_date: date = Field(..., description="Exclusive")
    # Renews monthly; informational, billing is unaffected
    every_month: bool = False


class StudentSubscriptionResponse(BaseModel):
    id: UUID
    student_id: UUID
    subscription_id: UUID
    start_date: date
    end_date: date
    every_month: bool
    status: SubscriptionStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
