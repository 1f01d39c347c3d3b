from uuid import UUID

from pydantic import BaseModel

from academy.core.enums import Role


class CurrentUser(BaseModel):
    """Authenticated caller as asserted by the identity provider's token."""

    id: UUID
    role: Role
