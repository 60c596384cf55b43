# attendance_hub/models/member.py
import uuid

from sqlalchemy import Column, String

from attendance_hub.db.base import Base


class Member(Base):
    """
    Minimal member identity used to answer check-ins.

    Member management itself belongs to the wider administration system.
    """

    __tablename__ = "members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Member id={self.id} name={self.first_name} {self.last_name}>"
