from typing import List, Dict, Any, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from chorequest.database.models.character import Character
from chorequest.database.models.enums import RecurrencePattern
from chorequest.database.models.quest_template import QuestTemplate
from chorequest.database.models.streak import CharacterQuestStreak
from chorequest.services.config_manager import ConfigManager
from chorequest.services.logger import get_logger
from chorequest.utils.time_utils import days_between_in_timezone

logger = get_logger(__name__)


class StreakService:
    """
    Per-character, per-template completion streaks for recurring quests.

    Quest approval asks this service whether a completion continues the
    streak, then increments or resets it and turns the count into a bonus
    fraction of the base reward.

    Consecutiveness (family-local calendar days, DST safe):
        - DAILY: at most 2 days since the last completion
        - WEEKLY: at most 7 days since the last completion
        - CUSTOM / no pattern: always consecutive
        - No previous completion: always consecutive

    Streak Bonus:
        +1% per 5 consecutive completions, capped at +5%
        (tunable via streak_bonus.* in ConfigManager)

    Usage:
        >>> streak = await StreakService.get_streak(session, character.id, template.id)
        >>> if StreakService.validate_consecutive_completion(streak, "DAILY", now, "America/Chicago"):
        ...     streak = await StreakService.increment_streak(session, streak, now)
        >>> StreakService.calculate_streak_bonus(streak.current_streak)
        0.01
    """

    @staticmethod
    async def get_streak(
        session: AsyncSession,
        character_id: str,
        template_id: str
    ) -> CharacterQuestStreak:
        """
        Get the streak record for a character and template, creating it on first access.

        Returns:
            CharacterQuestStreak (zeroed when newly created)
        """
        result = await session.execute(
            select(CharacterQuestStreak).where(
                CharacterQuestStreak.character_id == character_id,
                CharacterQuestStreak.template_id == template_id
            )
        )
        streak = result.scalar_one_or_none()

        if streak is None:
            streak = CharacterQuestStreak(
                character_id=character_id,
                template_id=template_id,
                current_streak=0,
                longest_streak=0,
                last_completed_date=None
            )
            session.add(streak)
            await session.flush()
            logger.debug(f"Created streak record for character {character_id} on template {template_id}")

        return streak

    @staticmethod
    def validate_consecutive_completion(
        streak: CharacterQuestStreak,
        recurrence_pattern: Optional[Any],
        completed_at: datetime,
        timezone: str = "UTC"
    ) -> bool:
        """
        Check whether a completion continues the streak.

        Args:
            streak: Existing streak record
            recurrence_pattern: RecurrencePattern of the template (or None)
            completed_at: Moment of the new completion (naive UTC)
            timezone: Family IANA timezone used for day boundaries

        Returns:
            True if the streak should be incremented, False if it should reset
        """
        if streak.last_completed_date is None:
            return True

        pattern = getattr(recurrence_pattern, "value", recurrence_pattern)
        days = days_between_in_timezone(streak.last_completed_date, completed_at, timezone)

        if pattern == RecurrencePattern.DAILY.value:
            return days <= ConfigManager.get("streak_validation.daily_max_gap_days", 2)
        if pattern == RecurrencePattern.WEEKLY.value:
            return days <= ConfigManager.get("streak_validation.weekly_max_gap_days", 7)

        return True

    @staticmethod
    async def increment_streak(
        session: AsyncSession,
        streak: CharacterQuestStreak,
        completed_at: datetime
    ) -> CharacterQuestStreak:
        """Credit one consecutive completion and track the longest streak."""
        streak.current_streak += 1
        streak.longest_streak = max(streak.longest_streak, streak.current_streak)
        streak.last_completed_date = completed_at
        await session.flush()

        logger.debug(
            f"Streak incremented: character={streak.character_id} template={streak.template_id} "
            f"current={streak.current_streak}"
        )
        return streak

    @staticmethod
    async def reset_streak(
        session: AsyncSession,
        streak: CharacterQuestStreak
    ) -> CharacterQuestStreak:
        """Break the streak. longest_streak is kept."""
        streak.current_streak = 0
        await session.flush()

        logger.debug(f"Streak reset: character={streak.character_id} template={streak.template_id}")
        return streak

    @staticmethod
    def calculate_streak_bonus(streak_count: int) -> float:
        """
        Bonus fraction for a streak length.

        Example:
            >>> StreakService.calculate_streak_bonus(12)
            0.02
            >>> StreakService.calculate_streak_bonus(40)
            0.05
        """
        if streak_count <= 0:
            return 0.0

        increment = ConfigManager.get("streak_bonus.increment", 0.01)
        threshold = ConfigManager.get("streak_bonus.threshold_days", 5)
        max_bonus = ConfigManager.get("streak_bonus.max", 0.05)

        tiers = streak_count // threshold
        return round(min(tiers * increment, max_bonus), 4)

    @staticmethod
    async def get_character_streaks(
        session: AsyncSession,
        character_id: str
    ) -> List[CharacterQuestStreak]:
        """All streaks of a character, longest current streak first."""
        result = await session.execute(
            select(CharacterQuestStreak)
            .where(CharacterQuestStreak.character_id == character_id)
            .order_by(CharacterQuestStreak.current_streak.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_streak_leaderboard(
        session: AsyncSession,
        family_id: str,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Active streaks in a family, ranked by current streak.

        Returns:
            List of dicts with character_id, character_name, template_id,
            template_title, current_streak, longest_streak
        """
        result = await session.execute(
            select(CharacterQuestStreak, Character.name, QuestTemplate.title)
            .join(Character, Character.id == CharacterQuestStreak.character_id)
            .join(QuestTemplate, QuestTemplate.id == CharacterQuestStreak.template_id)
            .where(
                QuestTemplate.family_id == family_id,
                CharacterQuestStreak.current_streak > 0
            )
            .order_by(
                CharacterQuestStreak.current_streak.desc(),
                CharacterQuestStreak.longest_streak.desc()
            )
            .limit(limit)
        )

        return [
            {
                "character_id": streak.character_id,
                "character_name": character_name,
                "template_id": streak.template_id,
                "template_title": template_title,
                "current_streak": streak.current_streak,
                "longest_streak": streak.longest_streak,
            }
            for streak, character_name, template_title in result.all()
        ]
