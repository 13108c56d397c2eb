from .enums import (
    QuestStatus,
    QuestType,
    QuestDifficulty,
    QuestCategory,
    CharacterClass,
    RecurrencePattern,
    TransactionType,
    RedemptionStatus,
)
from .family import Family
from .character import Character
from .quest_template import QuestTemplate
from .quest_instance import QuestInstance
from .streak import CharacterQuestStreak
from .transaction_log import TransactionLog
from .reward import Reward, RewardRedemption
from .game_config import GameConfig

__all__ = [
    "QuestStatus",
    "QuestType",
    "QuestDifficulty",
    "QuestCategory",
    "CharacterClass",
    "RecurrencePattern",
    "TransactionType",
    "RedemptionStatus",
    "Family",
    "Character",
    "QuestTemplate",
    "QuestInstance",
    "CharacterQuestStreak",
    "TransactionLog",
    "Reward",
    "RewardRedemption",
    "GameConfig",
]
