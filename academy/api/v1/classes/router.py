from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user
from academy.auth.rbac import require_roles
from academy.auth.schemas import CurrentUser
from academy.core.enums import Role, SessionStatus
from academy.core.exceptions import ServiceError
from academy.db.session import get_db

from .schemas import (
    ClassCreate,
    ClassCreateResult,
    ClassResponse,
    RescheduleResult,
    SessionCancel,
    SessionReschedule,
    SessionResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])
sessions_router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


@router.post(
    "",
    response_model=ClassCreateResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def create_class(
    payload: ClassCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassCreateResult:
    """Create a class and its sessions. With conflicts and no `force`, returns 200 and creates nothing."""
    try:
        result = await service.create_class(db, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/{class_id}",
    response_model=ClassResponse,
    dependencies=[Depends(require_roles(Role.MODERATOR, Role.TEACHER))],
)
async def get_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    obj = await service.get_class(db, class_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return obj


@router.get(
    "/{class_id}/sessions",
    response_model=List[SessionResponse],
    dependencies=[Depends(require_roles(Role.MODERATOR, Role.TEACHER))],
)
async def list_class_sessions(
    class_id: UUID,
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> List[SessionResponse]:
    return await service.list_class_sessions(db, class_id, session_status)


# ----- Sessions -----
@sessions_router.post(
    "/{session_id}/cancel",
    response_model=SessionResponse,
)
async def cancel_session(
    session_id: UUID,
    payload: SessionCancel,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(Role.MODERATOR, Role.TEACHER)),
) -> SessionResponse:
    try:
        return await service.cancel_session(db, session_id, payload.reason, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@sessions_router.post(
    "/{session_id}/complete",
    response_model=SessionResponse,
    dependencies=[Depends(require_roles(Role.MODERATOR, Role.TEACHER))],
)
async def complete_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    try:
        return await service.complete_session(db, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@sessions_router.post(
    "/{session_id}/reschedule",
    response_model=RescheduleResult,
    dependencies=[Depends(require_roles(Role.MODERATOR))],
)
async def reschedule_session(
    session_id: UUID,
    payload: SessionReschedule,
    db: AsyncSession = Depends(get_db),
) -> RescheduleResult:
    """Move a scheduled session. Conflicts come back in the body with rescheduled=false."""
    try:
        return await service.reschedule_session(db, session_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
