"""Shared fixtures for the ChoreQuest core test suite.

Every test gets a fresh in-memory SQLite database (aiosqlite + StaticPool),
a clean ConfigManager cache and an EventBus with no listeners.

Factories build and flush rows with sensible defaults; override any column
through keyword arguments:

    quest = await make_quest(family, quest_type=QuestType.INDIVIDUAL, gold_reward=100)
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "testing")

from datetime import timedelta
from typing import Any, Callable, Awaitable

import pytest

from chorequest.config import Config
from chorequest.database.models import (
    Character,
    CharacterClass,
    Family,
    QuestDifficulty,
    QuestInstance,
    QuestStatus,
    QuestTemplate,
    QuestType,
    RecurrencePattern,
    Reward,
)
from chorequest.services import ConfigManager, DatabaseService, EventBus
from chorequest.utils.time_utils import utcnow


# ============================================================================
# DATABASE
# ============================================================================


@pytest.fixture
async def db():
    """Initialize an isolated in-memory database for one test."""
    Config.DATABASE_URL = "sqlite+aiosqlite://"
    Config.ENVIRONMENT = "testing"

    await DatabaseService.initialize(max_retries=1, retry_delay=0)
    await DatabaseService.create_tables()
    yield
    await DatabaseService.drop_tables()
    await DatabaseService.shutdown()


@pytest.fixture
async def session(db):
    """Session without auto-commit; tests commit explicitly where needed."""
    async with DatabaseService.get_session() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset class-level caches and listeners around every test."""
    ConfigManager.clear_cache()
    EventBus.clear()
    yield
    ConfigManager.clear_cache()
    EventBus.clear()


@pytest.fixture
def events():
    """Record every lifecycle event published during the test."""
    received: list[tuple[str, dict[str, Any]]] = []

    def make_listener(name: str) -> Callable[[dict[str, Any]], None]:
        def listener(data: dict[str, Any]) -> None:
            received.append((name, data))
        return listener

    for name in (
        "quest_claimed",
        "quest_released",
        "quest_assigned",
        "quest_completed",
        "quest_denied",
        "quest_cancelled",
        "quest_approved",
        "character_leveled_up",
        "quests_expired",
        "reward_redeemed",
        "redemption_updated",
    ):
        EventBus.subscribe(name, make_listener(name))

    return received


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
async def family(session) -> Family:
    """Default family in UTC."""
    family = Family(name="The Testers", code="TEST01", timezone="UTC")
    session.add(family)
    await session.flush()
    return family


@pytest.fixture
def make_character(session) -> Callable[..., Awaitable[Character]]:
    """Factory for characters; each call gets a distinct user id."""
    counter = {"n": 0}

    async def factory(**overrides: Any) -> Character:
        counter["n"] += 1
        values = {
            "user_id": f"user-{counter['n']}",
            "name": f"Hero {counter['n']}",
            "character_class": CharacterClass.KNIGHT,
            "level": 1,
            "xp": 0,
            "gold": 0,
        }
        values.update(overrides)
        character = Character(**values)
        session.add(character)
        await session.flush()
        return character

    return factory


@pytest.fixture
def make_template(session) -> Callable[..., Awaitable[QuestTemplate]]:
    """Factory for recurring templates (DAILY by default)."""

    async def factory(family: Family, **overrides: Any) -> QuestTemplate:
        values = {
            "family_id": family.id,
            "title": "Feed the cat",
            "quest_type": QuestType.INDIVIDUAL,
            "difficulty": QuestDifficulty.EASY,
            "xp_reward": 100,
            "gold_reward": 100,
            "recurrence_pattern": RecurrencePattern.DAILY,
        }
        values.update(overrides)
        template = QuestTemplate(**values)
        session.add(template)
        await session.flush()
        return template

    return factory


@pytest.fixture
def make_quest(session) -> Callable[..., Awaitable[QuestInstance]]:
    """Factory for quest instances (AVAILABLE family quest by default)."""

    async def factory(family: Family, **overrides: Any) -> QuestInstance:
        values = {
            "family_id": family.id,
            "title": "Wash the dishes",
            "quest_type": QuestType.FAMILY,
            "difficulty": QuestDifficulty.EASY,
            "status": QuestStatus.AVAILABLE,
            "xp_reward": 100,
            "gold_reward": 60,
        }
        values.update(overrides)
        quest = QuestInstance(**values)
        session.add(quest)
        await session.flush()
        return quest

    return factory


@pytest.fixture
def make_reward(session) -> Callable[..., Awaitable[Reward]]:
    """Factory for store rewards."""

    async def factory(family: Family, **overrides: Any) -> Reward:
        values = {
            "family_id": family.id,
            "name": "30 minutes of screen time",
            "cost": 50,
        }
        values.update(overrides)
        reward = Reward(**values)
        session.add(reward)
        await session.flush()
        return reward

    return factory


@pytest.fixture
def past_cycle() -> Callable[[int], Any]:
    """Datetime a number of hours in the past (naive UTC)."""

    def factory(hours: int = 1):
        return utcnow() - timedelta(hours=hours)

    return factory
