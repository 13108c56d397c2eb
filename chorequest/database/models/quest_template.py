from typing import Optional, Dict, Any
from uuid import uuid4
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Index, JSON
from datetime import datetime

from chorequest.database.models.enums import (
    QuestType,
    QuestCategory,
    QuestDifficulty,
    RecurrencePattern,
)
from chorequest.utils.time_utils import utcnow


class QuestTemplate(SQLModel, table=True):
    """
    Recurring quest definition that quest instances are generated from.

    Read-only for the quest lifecycle: approval uses it for the recurrence
    pattern (streak keying) and optional per-class bonus overrides.

    Attributes:
        recurrence_pattern: DAILY/WEEKLY/CUSTOM, or None for one-off templates
        class_bonuses: Optional per-class multiplier overrides, e.g.
            {"MAGE": {"xp": 1.3}}. Fields not listed keep the fixed class bonus.
        is_paused: Paused templates do not break streaks when their quests expire

    Indexes:
        - family_id
    """

    __tablename__ = "quest_templates"
    __table_args__ = (
        Index("ix_quest_templates_family_id", "family_id"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    family_id: str = Field(foreign_key="families.id", max_length=36, nullable=False)

    title: str = Field(max_length=200, nullable=False)
    description: str = Field(default="")
    quest_type: QuestType = Field(default=QuestType.INDIVIDUAL)
    category: QuestCategory = Field(default=QuestCategory.DAILY)
    difficulty: QuestDifficulty = Field(default=QuestDifficulty.EASY)

    xp_reward: int = Field(default=0, ge=0)
    gold_reward: int = Field(default=0, ge=0)

    recurrence_pattern: Optional[RecurrencePattern] = Field(default=None)
    class_bonuses: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    is_active: bool = Field(default=True)
    is_paused: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<QuestTemplate(id={self.id}, title='{self.title}', "
            f"recurrence={self.recurrence_pattern})>"
        )
