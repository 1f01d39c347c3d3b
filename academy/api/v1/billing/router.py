"""Billing API router."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user
from academy.auth.rbac import ensure_self_or_staff
from academy.auth.schemas import CurrentUser
from academy.core.exceptions import ServiceError
from academy.db.session import get_db

from . import service
from .schemas import BillingCalculation

router = APIRouter(prefix="/api/v1/billing", tags=["billing"])


@router.get(
    "/students/{student_id}",
    response_model=BillingCalculation,
)
async def calculate_billing(
    student_id: UUID,
    period_start: date = Query(..., description="First day, inclusive"),
    period_end: date = Query(..., description="Last day, inclusive"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BillingCalculation:
    """What the student owes for the period: attended hours at the active subscription's rate."""
    ensure_self_or_staff(current_user, student_id)
    try:
        return await service.calculate(db, student_id, period_start, period_end)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/students/{student_id}/monthly",
    response_model=BillingCalculation,
)
async def calculate_monthly_billing(
    student_id: UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BillingCalculation:
    ensure_self_or_staff(current_user, student_id)
    try:
        return await service.calculate_monthly(db, student_id, year, month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
