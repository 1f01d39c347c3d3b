from uuid import UUID

from fastapi import Depends, HTTPException, status

from academy.auth.dependencies import get_current_user
from academy.auth.schemas import CurrentUser
from academy.core.enums import Role

STAFF_ROLES = (Role.ADMIN, Role.MODERATOR)


def require_roles(*roles: Role):
    """
    Dependency factory to restrict an endpoint to some roles. Admins always pass.

    Example:
        Depends(require_roles(Role.TEACHER))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role == Role.ADMIN or current_user.role in roles:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return _checker


def ensure_self_or_staff(current_user: CurrentUser, person_id: UUID) -> None:
    """Students and teachers may only read their own records; parents go through staff views."""
    if current_user.role in STAFF_ROLES:
        return
    if current_user.role in (Role.STUDENT, Role.TEACHER) and current_user.id == person_id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions",
    )
