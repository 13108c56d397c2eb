from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint, Index
from datetime import datetime


class CharacterQuestStreak(SQLModel, table=True):
    """
    Consecutive completion streak of one character on one recurring template.

    Attributes:
        character_id: Hero the streak belongs to
        template_id: Recurring template being completed
        current_streak: Consecutive completions so far (0 after a break)
        longest_streak: Best streak ever reached, kept across resets
        last_completed_date: Moment of the last credited completion (UTC)

    Unique Constraint:
        (character_id, template_id) - one streak per hero per template
    """

    __tablename__ = "character_quest_streaks"
    __table_args__ = (
        UniqueConstraint("character_id", "template_id", name="uq_streak_character_template"),
        Index("ix_streaks_current", "current_streak"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    character_id: str = Field(foreign_key="characters.id", max_length=36, nullable=False)
    template_id: str = Field(foreign_key="quest_templates.id", max_length=36, nullable=False)

    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_completed_date: Optional[datetime] = Field(default=None)

    def __repr__(self) -> str:
        return (
            f"<CharacterQuestStreak(character={self.character_id}, template={self.template_id}, "
            f"current={self.current_streak}, longest={self.longest_streak})>"
        )
