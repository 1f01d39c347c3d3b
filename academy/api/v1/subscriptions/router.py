from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user
from academy.auth.rbac import ensure_self_or_staff, require_roles
from academy.auth.schemas import CurrentUser
from academy.core.enums import Role
from academy.core.exceptions import ServiceError
from academy.db.session import get_db

from . import service
from .schemas import (
    StudentSubscriptionActivate,
    StudentSubscriptionResponse,
    SubscriptionCreate,
    SubscriptionResponse,
)

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])
student_router = APIRouter(prefix="/api/v1/student-subscriptions", tags=["student-subscriptions"])


# ----- Plans -----
@router.get(
    "",
    response_model=List[SubscriptionResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_plans(
    include_superseded: bool = Query(False, description="Include plans replaced by newer terms"),
    db: AsyncSession = Depends(get_db),
) -> List[SubscriptionResponse]:
    return await service.list_subscriptions(db, include_superseded)


@router.get(
    "/{subscription_id}",
    response_model=SubscriptionResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_plan(
    subscription_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> SubscriptionResponse:
    try:
        return await service.get_subscription(db, subscription_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=SubscriptionResponse,
    status_code=http_status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def create_plan(
    payload: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
) -> SubscriptionResponse:
    return await service.create_subscription(db, payload)


@router.post(
    "/{subscription_id}/supersede",
    response_model=SubscriptionResponse,
    status_code=http_status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def supersede_plan(
    subscription_id: UUID,
    payload: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
) -> SubscriptionResponse:
    """Replace a plan's terms with a new plan. Existing student subscriptions keep the old one."""
    try:
        return await service.supersede_subscription(db, subscription_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Student subscriptions -----
@student_router.post(
    "",
    response_model=StudentSubscriptionResponse,
    status_code=http_status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def activate_subscription(
    payload: StudentSubscriptionActivate,
    db: AsyncSession = Depends(get_db),
) -> StudentSubscriptionResponse:
    """Activate a plan for a student; any previously active subscription becomes inactive."""
    try:
        return await service.activate(
            db, payload.student_id, payload.subscription_id, payload.start_date, payload.end_date,
            every_month=payload.every_month,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.get(
    "",
    response_model=List[StudentSubscriptionResponse],
)
async def list_student_subscriptions(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentSubscriptionResponse]:
    ensure_self_or_staff(current_user, student_id)
    return await service.list_student_subscriptions(db, student_id)


@student_router.get(
    "/current",
    response_model=StudentSubscriptionResponse,
)
async def get_current_subscription(
    student_id: UUID,
    as_of: Optional[date] = Query(None, description="Defaults to today (UTC)"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentSubscriptionResponse:
    ensure_self_or_staff(current_user, student_id)
    as_of = as_of or date.today()
    row = await service.current_active(db, student_id, as_of)
    if not row:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="No active subscription")
    return StudentSubscriptionResponse.model_validate(row)


@student_router.post(
    "/{student_subscription_id}/deactivate",
    response_model=StudentSubscriptionResponse,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def deactivate_subscription(
    student_subscription_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentSubscriptionResponse:
    try:
        return await service.deactivate(db, student_subscription_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.post(
    "/{student_subscription_id}/reactivate",
    response_model=StudentSubscriptionResponse,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def reactivate_subscription(
    student_subscription_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentSubscriptionResponse:
    try:
        return await service.reactivate(db, student_subscription_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
