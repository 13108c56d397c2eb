from enum import Enum


class QuestStatus(str, Enum):
    """Lifecycle status of a quest instance."""

    AVAILABLE = "AVAILABLE"
    CLAIMED = "CLAIMED"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    EXPIRED = "EXPIRED"
    MISSED = "MISSED"


class QuestType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    FAMILY = "FAMILY"


class QuestDifficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class QuestCategory(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BOSS_BATTLE = "BOSS_BATTLE"


class CharacterClass(str, Enum):
    KNIGHT = "KNIGHT"
    MAGE = "MAGE"
    RANGER = "RANGER"
    ROGUE = "ROGUE"
    HEALER = "HEALER"


class RecurrencePattern(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    CUSTOM = "CUSTOM"


class TransactionType(str, Enum):
    """Ledger entry kinds. Every wallet mutation writes exactly one."""

    QUEST_REWARD = "QUEST_REWARD"
    BOSS_VICTORY = "BOSS_VICTORY"
    STORE_PURCHASE = "STORE_PURCHASE"
    REWARD_REFUND = "REWARD_REFUND"
    BONUS_AWARD = "BONUS_AWARD"
    SOS_HELP = "SOS_HELP"


class RedemptionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    FULFILLED = "FULFILLED"
