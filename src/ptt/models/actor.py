"""
Actor model: who is performing a change.

Authentication happens outside the tracker; callers hand in the resolved
identity, role and department.
"""

from pydantic import BaseModel, Field


class Actor(BaseModel):
    """The user on whose behalf a service call runs."""

    id: str = Field(..., min_length=1)
    role: str = Field(default="user")
    department: str | None = None

    def has_role(self, roles: list[str]) -> bool:
        """Case-insensitive role membership check."""
        return self.role.lower() in {r.lower() for r in roles}
