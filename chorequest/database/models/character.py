from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field
from sqlalchemy import Index
from datetime import datetime

from chorequest.database.models.enums import CharacterClass
from chorequest.utils.time_utils import utcnow


class Character(SQLModel, table=True):
    """
    A user's persistent game avatar and wallet.

    Stores progression (xp, level) and currencies (gold, gems, honor points).
    Wallet fields only move through quest approval, reward redemption or
    admin tooling, and every move is paired with a TransactionLog row.

    Attributes:
        user_id: Owning user (one character per user)
        character_class: Immutable class driving reward bonuses
        level: Current level (>= 1)
        xp: Lifetime experience
        gold: Spendable currency
        active_family_quest_id: The single FAMILY quest this hero currently
            holds, or None. Enforces the one-active-family-quest rule.

    Indexes:
        - user_id (unique)
        - active_family_quest_id
    """

    __tablename__ = "characters"
    __table_args__ = (
        Index("ix_characters_user_id", "user_id", unique=True),
        Index("ix_characters_active_family_quest", "active_family_quest_id"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    user_id: str = Field(max_length=36, nullable=False)
    name: str = Field(default="Hero", max_length=100)
    character_class: Optional[CharacterClass] = Field(default=None)

    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    gold: int = Field(default=0, ge=0)
    gems: int = Field(default=0, ge=0)
    honor_points: int = Field(default=0, ge=0)

    active_family_quest_id: Optional[str] = Field(default=None, max_length=36)

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def has_active_family_quest(self) -> bool:
        """Check whether the hero already holds a FAMILY quest."""
        return self.active_family_quest_id is not None

    def wallet(self) -> dict:
        """Snapshot of the ledger-tracked fields."""
        return {
            "gold": self.gold,
            "xp": self.xp,
            "gems": self.gems,
            "honor_points": self.honor_points,
        }

    def __repr__(self) -> str:
        return (
            f"<Character(id={self.id}, user={self.user_id}, "
            f"level={self.level}, gold={self.gold})>"
        )
