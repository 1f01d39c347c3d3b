"""Scheduling API router: conflict checks, teacher availability, recurring commitments."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user
from academy.auth.rbac import STAFF_ROLES, ensure_self_or_staff, require_roles
from academy.auth.schemas import CurrentUser
from academy.core.enums import Role
from academy.core.exceptions import ServiceError
from academy.db.session import get_db

from . import service
from .schemas import (
    CommitmentCreate,
    CommitmentCreateResult,
    CommitmentResponse,
    ConflictCheckRequest,
    ConflictReport,
    TeacherAvailabilityResponse,
    TeacherAvailabilityUpdate,
)

router = APIRouter(prefix="/api/v1/scheduling", tags=["scheduling"])


@router.post(
    "/conflicts",
    response_model=ConflictReport,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def check_conflicts(
    payload: ConflictCheckRequest,
    db: AsyncSession = Depends(get_db),
) -> ConflictReport:
    """Dry run: report conflicts for a candidate weekly schedule without writing anything."""
    try:
        return await service.check_conflicts(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Teacher availability -----
@router.get(
    "/availability/{teacher_id}",
    response_model=TeacherAvailabilityResponse,
)
async def get_teacher_availability(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherAvailabilityResponse:
    ensure_self_or_staff(current_user, teacher_id)
    obj = await service.get_teacher_availability(db, teacher_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No availability set for this teacher")
    return obj


@router.put(
    "/availability/{teacher_id}",
    response_model=TeacherAvailabilityResponse,
)
async def set_teacher_availability(
    teacher_id: UUID,
    payload: TeacherAvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(Role.MODERATOR, Role.TEACHER)),
) -> TeacherAvailabilityResponse:
    """Teachers set their own availability; staff may set anyone's."""
    ensure_self_or_staff(current_user, teacher_id)
    try:
        return await service.set_teacher_availability(db, teacher_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Recurring commitments -----
@router.post(
    "/commitments",
    response_model=CommitmentCreateResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_commitment(
    payload: CommitmentCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> CommitmentCreateResult:
    if current_user.role not in STAFF_ROLES and current_user.id != payload.owner_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    try:
        result = await service.create_commitment(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/commitments/{owner_id}",
    response_model=List[CommitmentResponse],
)
async def list_commitments(
    owner_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[CommitmentResponse]:
    ensure_self_or_staff(current_user, owner_id)
    return await service.list_commitments(db, owner_id)


@router.delete(
    "/commitments/{commitment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def delete_commitment(
    commitment_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_commitment(db, commitment_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Commitment not found")
