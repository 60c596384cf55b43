# attendance_hub/schemas/actor.py
from pydantic import BaseModel, Field

ADMIN_ROLE = "admin"
ADMIN_MIN_ROLE_LEVEL = 4


class Actor(BaseModel):
    """
    The authenticated user operating a scanner, as provided by the
    authentication collaborator.
    """

    id: str
    role: str | None = Field(None, examples=["admin"])
    role_level: int | None = Field(None, examples=[4])
    first_name: str = ""
    last_name: str = ""

    @property
    def is_admin(self) -> bool:
        """
        Admins are users with the `admin` role or a role level of 4 or more.
        """
        if self.role == ADMIN_ROLE:
            return True
        return self.role_level is not None and self.role_level >= ADMIN_MIN_ROLE_LEVEL
