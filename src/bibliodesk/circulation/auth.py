"""Acting-user context passed to circulation services."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Roles(str, Enum):
    """Roles recognised by the circulation services."""

    LIBRARIAN = "librarian"
    MEMBER = "member"


class CurrentUser(BaseModel):
    """The user on whose behalf an operation runs.

    Used for audit attribution and access narrowing.
    """

    id: str
    roles: list[Roles] = Field(default_factory=list)
    tenant_id: str = "default"
    language: Optional[str] = None

    def has_role(self, role: Roles) -> bool:
        """Check if the user holds a role."""
        return role in self.roles

    @property
    def is_member_only(self) -> bool:
        """True for members who are not also librarians."""
        return self.has_role(Roles.MEMBER) and not self.has_role(Roles.LIBRARIAN)
