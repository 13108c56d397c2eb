from typing import Optional, Dict, Any
from uuid import uuid4
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Index, JSON
from datetime import datetime

from chorequest.database.models.enums import TransactionType
from chorequest.utils.time_utils import utcnow


class TransactionLog(SQLModel, table=True):
    """
    Immutable ledger entry for every change to a character's wallet.

    Replaying all rows of a character reproduces its gold/xp/gems/honor
    balances (see AuditService).

    Attributes:
        user_id: Owning user of the character
        character_id: Character whose wallet changed
        transaction_type: QUEST_REWARD, STORE_PURCHASE, REWARD_REFUND, ...
        gold_change / xp_change / gems_change / honor_change: Signed deltas
        related_id: Quest or redemption id the change came from
        description: Human-readable summary
        details: Structured JSON data (bonuses applied, level change, ...)
        timestamp: When the change happened

    Indexes:
        - (character_id, timestamp) for wallet history and replay
        - transaction_type for aggregate queries
        - timestamp for cleanup of old entries
    """

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_character_time", "character_id", "timestamp"),
        Index("ix_transactions_type", "transaction_type"),
        Index("ix_transactions_timestamp", "timestamp"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=36)
    user_id: Optional[str] = Field(default=None, max_length=36)
    character_id: str = Field(foreign_key="characters.id", max_length=36, nullable=False)

    transaction_type: TransactionType = Field(nullable=False)
    gold_change: int = Field(default=0)
    xp_change: int = Field(default=0)
    gems_change: int = Field(default=0)
    honor_change: int = Field(default=0)

    related_id: Optional[str] = Field(default=None, max_length=36)
    description: str = Field(default="")
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    timestamp: datetime = Field(default_factory=utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<TransactionLog(id={self.id}, character={self.character_id}, "
            f"type='{self.transaction_type}', gold={self.gold_change}, time={self.timestamp})>"
        )
