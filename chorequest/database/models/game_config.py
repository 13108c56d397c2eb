from typing import Optional, Any, Dict
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import String, JSON
from datetime import datetime

from chorequest.utils.time_utils import utcnow


class GameConfig(SQLModel, table=True):
    """
    Tunable economy settings stored in database.

    Allows streak and bonus tuning without code deployment.
    ConfigManager caches these values in memory.

    Attributes:
        config_key: Unique top-level key (e.g., 'streak_bonus')
        config_value: JSON data containing configuration
        description: Human-readable description
        last_modified: Timestamp of last update
        modified_by: User/system that made the change
    """

    __tablename__ = "game_config"

    id: Optional[int] = Field(default=None, primary_key=True)
    config_key: str = Field(
        sa_column=Column(String(100), unique=True, nullable=False, index=True)
    )

    config_value: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    description: str = Field(default="", max_length=500)

    last_modified: datetime = Field(default_factory=utcnow, nullable=False)
    modified_by: Optional[str] = Field(default=None, max_length=100)

    def __repr__(self) -> str:
        return f"<GameConfig(key='{self.config_key}', modified={self.last_modified})>"
