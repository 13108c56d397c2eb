from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field
from sqlalchemy import Index
from datetime import datetime

from chorequest.database.models.enums import RedemptionStatus
from chorequest.utils.time_utils import utcnow


class Reward(SQLModel, table=True):
    """
    Store item a Guild Master offers for gold (screen time, privileges, ...).

    Attributes:
        family_id: Family the reward is offered in
        cost: Gold price
        is_active: Soft-delete flag; inactive rewards cannot be redeemed
    """

    __tablename__ = "rewards"
    __table_args__ = (
        Index("ix_rewards_family_active", "family_id", "is_active"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    family_id: str = Field(foreign_key="families.id", max_length=36, nullable=False)
    name: str = Field(max_length=200, nullable=False)
    description: str = Field(default="")
    cost: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Reward(id={self.id}, name='{self.name}', cost={self.cost})>"


class RewardRedemption(SQLModel, table=True):
    """
    A hero's purchase of a reward, awaiting Guild Master approval.

    The cost is debited when the redemption is created and refunded if it is
    denied while still PENDING.

    Attributes:
        user_id: Purchasing user
        reward_id: Reward bought
        reward_name: Name at purchase time (rewards can be renamed later)
        cost: Gold debited at purchase time
        status: PENDING -> APPROVED/DENIED -> FULFILLED
    """

    __tablename__ = "reward_redemptions"
    __table_args__ = (
        Index("ix_reward_redemptions_user_status", "user_id", "status"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    user_id: str = Field(max_length=36, nullable=False)
    reward_id: str = Field(foreign_key="rewards.id", max_length=36, nullable=False)
    reward_name: str = Field(default="", max_length=200)
    cost: int = Field(default=0, ge=0)
    status: RedemptionStatus = Field(default=RedemptionStatus.PENDING)

    requested_at: datetime = Field(default_factory=utcnow, nullable=False)
    approved_at: Optional[datetime] = Field(default=None)
    approved_by: Optional[str] = Field(default=None, max_length=36)
    fulfilled_at: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    def __repr__(self) -> str:
        return (
            f"<RewardRedemption(id={self.id}, reward='{self.reward_name}', "
            f"cost={self.cost}, status={self.status})>"
        )
