from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field
from sqlalchemy import Index
from datetime import datetime

from chorequest.database.models.enums import (
    QuestStatus,
    QuestType,
    QuestCategory,
    QuestDifficulty,
)
from chorequest.utils.time_utils import utcnow


class QuestInstance(SQLModel, table=True):
    """
    A concrete, schedulable chore that a hero can claim, complete and get paid for.

    FAMILY quests sit in a shared pool (AVAILABLE) until a hero claims one or a
    Guild Master assigns it. INDIVIDUAL quests are pre-assigned.

    Attributes:
        status: Lifecycle status (see QuestStatus)
        xp_reward / gold_reward: Base rewards, fixed at creation
        assigned_to_id: User id owning the quest
        volunteered_by: Character id that claimed or was assigned the quest
        volunteer_bonus: Fraction of base rewards added for self-claiming a
            FAMILY quest (0.20), None for GM assignment
        streak_count / streak_bonus: Streak snapshot written at approval
        cycle_end_date: End of the recurrence window; past it the quest expires

    Indexes:
        - (family_id, status) for pool listings
        - volunteered_by
        - (template_id, cycle_end_date) for expiry sweeps
    """

    __tablename__ = "quest_instances"
    __table_args__ = (
        Index("ix_quest_instances_family_status", "family_id", "status"),
        Index("ix_quest_instances_volunteered_by", "volunteered_by"),
        Index("ix_quest_instances_template_cycle", "template_id", "cycle_end_date"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    family_id: Optional[str] = Field(default=None, foreign_key="families.id", max_length=36)
    template_id: Optional[str] = Field(default=None, foreign_key="quest_templates.id", max_length=36)
    created_by_id: Optional[str] = Field(default=None, max_length=36)

    title: str = Field(max_length=200, nullable=False)
    description: str = Field(default="")
    quest_type: QuestType = Field(default=QuestType.INDIVIDUAL)
    difficulty: QuestDifficulty = Field(default=QuestDifficulty.EASY)
    category: QuestCategory = Field(default=QuestCategory.DAILY)
    status: QuestStatus = Field(default=QuestStatus.AVAILABLE)

    xp_reward: int = Field(default=0, ge=0)
    gold_reward: int = Field(default=0, ge=0)

    assigned_to_id: Optional[str] = Field(default=None, max_length=36)
    volunteered_by: Optional[str] = Field(default=None, max_length=36)
    volunteer_bonus: Optional[float] = Field(default=None)
    streak_count: Optional[int] = Field(default=None)
    streak_bonus: Optional[float] = Field(default=None)

    due_date: Optional[datetime] = Field(default=None)
    cycle_start_date: Optional[datetime] = Field(default=None)
    cycle_end_date: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def is_family_quest(self) -> bool:
        return self.quest_type == QuestType.FAMILY

    def base_rewards(self) -> dict:
        """Base rewards in the shape RewardCalculator expects."""
        return {
            "xp_reward": self.xp_reward or 0,
            "gold_reward": self.gold_reward or 0,
        }

    def __repr__(self) -> str:
        return (
            f"<QuestInstance(id={self.id}, title='{self.title}', "
            f"type={self.quest_type}, status={self.status})>"
        )
