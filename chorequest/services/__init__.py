from .database_service import DatabaseService
from .config_manager import ConfigManager
from .logger import get_logger
from .event_bus import EventBus
from .transaction_logger import TransactionLogger
from .reward_calculator import RewardCalculator
from .streak_service import StreakService
from .quest_repository import QuestRepository
from .quest_instance_service import QuestInstanceService
from .reward_service import RewardService
from .audit_service import AuditService

__all__ = [
    "DatabaseService",
    "ConfigManager",
    "get_logger",
    "EventBus",
    "TransactionLogger",
    "RewardCalculator",
    "StreakService",
    "QuestRepository",
    "QuestInstanceService",
    "RewardService",
    "AuditService",
]
