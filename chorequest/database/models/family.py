from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field
from datetime import datetime

from chorequest.utils.time_utils import utcnow


class Family(SQLModel, table=True):
    """
    A household: the tenant every quest, template and reward belongs to.

    Attributes:
        name: Display name of the family
        code: Join code shared with new members
        timezone: IANA timezone used for streak day boundaries
        week_start_day: First day of the week for WEEKLY recurrence (0 = Sunday)
    """

    __tablename__ = "families"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    name: str = Field(max_length=100, nullable=False)
    code: Optional[str] = Field(default=None, max_length=20, unique=True)
    timezone: str = Field(default="UTC", max_length=64, nullable=False)
    week_start_day: int = Field(default=0, ge=0, le=6)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name='{self.name}', tz={self.timezone})>"
