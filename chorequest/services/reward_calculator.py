from typing import Dict, Any, Optional
import math

from chorequest.config import Config
from chorequest.database.models.enums import CharacterClass, QuestDifficulty
from chorequest.exceptions import InvalidDifficultyError
from chorequest.services.logger import get_logger

logger = get_logger(__name__)


class RewardCalculator:
    """
    Pure reward and leveling arithmetic.

    Converts a quest's base rewards into class/difficulty-adjusted payouts,
    combines them with volunteer and streak bonuses, and maps XP onto levels.
    No database access and no side effects beyond debug logging.

    The difficulty table, class bonus table and level curve are fixed
    constants: level progress bars and the level backfill depend on exact parity.

    Payout Formula:
        adjusted = round(base * class_bonus * difficulty_multiplier, 2)
        final = round(adjusted + base * volunteer_bonus + base * streak_bonus)

    Level Curve:
        xp_required(level) = 50 * (level - 1) ** 2
        Level 1: 0 XP, Level 2: 50 XP, Level 3: 200 XP, Level 4: 450 XP

    Usage:
        >>> RewardCalculator.calculate_quest_rewards(
        ...     {"xp_reward": 100}, "MEDIUM", "MAGE", 1
        ... )["xp"]
        180.0
        >>> RewardCalculator.calculate_level_up(0, 500, 1)
        {'previous_level': 1, 'new_level': 4}
    """

    DIFFICULTY_MULTIPLIERS: Dict[str, float] = {
        QuestDifficulty.EASY.value: 1.0,
        QuestDifficulty.MEDIUM.value: 1.5,
        QuestDifficulty.HARD.value: 2.0,
    }

    CLASS_BONUSES: Dict[str, Dict[str, float]] = {
        CharacterClass.HEALER.value: {"xp": 1.10, "gold": 1.00, "honor": 1.25, "gems": 1.00},
        CharacterClass.RANGER.value: {"xp": 1.00, "gold": 1.00, "honor": 1.00, "gems": 1.30},
        CharacterClass.KNIGHT.value: {"xp": 1.05, "gold": 1.05, "honor": 1.00, "gems": 1.00},
        CharacterClass.MAGE.value: {"xp": 1.20, "gold": 1.00, "honor": 1.00, "gems": 1.00},
        CharacterClass.ROGUE.value: {"xp": 1.00, "gold": 1.15, "honor": 1.00, "gems": 1.00},
    }

    DEFAULT_CLASS_BONUS: Dict[str, float] = {"xp": 1.0, "gold": 1.0, "honor": 1.0, "gems": 1.0}

    # output field -> (base key, class bonus key)
    REWARD_FIELDS: Dict[str, tuple] = {
        "gold": ("gold_reward", "gold"),
        "xp": ("xp_reward", "xp"),
        "gems": ("gems_reward", "gems"),
        "honor_points": ("honor_points_reward", "honor"),
    }

    @staticmethod
    def _key(value: Any) -> Optional[str]:
        """Normalize an enum member or raw string to its table key."""
        if value is None:
            return None
        return getattr(value, "value", value)

    @staticmethod
    def get_difficulty_multiplier(difficulty: Any) -> float:
        """
        Multiplier for a quest difficulty.

        Raises:
            InvalidDifficultyError: For anything outside EASY/MEDIUM/HARD
        """
        key = RewardCalculator._key(difficulty)
        if key not in RewardCalculator.DIFFICULTY_MULTIPLIERS:
            raise InvalidDifficultyError(difficulty)
        return RewardCalculator.DIFFICULTY_MULTIPLIERS[key]

    @staticmethod
    def get_class_bonus(character_class: Any) -> Dict[str, float]:
        """Per-field class multipliers. Unknown or missing class gets 1.0 everywhere."""
        key = RewardCalculator._key(character_class)
        bonus = RewardCalculator.CLASS_BONUSES.get(key, RewardCalculator.DEFAULT_CLASS_BONUS)
        return dict(bonus)

    @staticmethod
    def calculate_quest_rewards(
        base: Dict[str, Any],
        difficulty: Any,
        character_class: Any,
        current_level: int
    ) -> Dict[str, float]:
        """
        Apply class and difficulty multipliers to base rewards.

        Each output field is rounded to 2 decimals independently. Integer
        rounding happens later, when bonuses are combined.

        Args:
            base: Base rewards with keys xp_reward, gold_reward, gems_reward,
                honor_points_reward (missing keys count as 0)
            difficulty: QuestDifficulty or its name
            character_class: CharacterClass, its name, or None
            current_level: Character level (accepted for call compatibility,
                does not affect the result)

        Returns:
            Dictionary with gold, xp, gems, honor_points

        Raises:
            InvalidDifficultyError: If difficulty is not recognized

        Example:
            >>> RewardCalculator.calculate_quest_rewards(
            ...     {"xp_reward": 100, "gold_reward": 60}, "HARD", "ROGUE", 3
            ... )
            {'gold': 138.0, 'xp': 200.0, 'gems': 0.0, 'honor_points': 0.0}
        """
        multiplier = RewardCalculator.get_difficulty_multiplier(difficulty)
        class_bonus = RewardCalculator.get_class_bonus(character_class)

        rewards = {}
        for field, (base_key, bonus_key) in RewardCalculator.REWARD_FIELDS.items():
            amount = base.get(base_key) or 0
            rewards[field] = round(amount * class_bonus[bonus_key] * multiplier, 2)

        return rewards

    @staticmethod
    def apply_template_class_bonuses(
        adjusted: Dict[str, float],
        base: Dict[str, Any],
        class_bonuses: Optional[Dict[str, Any]],
        character_class: Any,
        difficulty: Any
    ) -> Dict[str, float]:
        """
        Recompute fields a template overrides for the character's class.

        Templates may carry {"MAGE": {"xp": 1.3}}. A listed field uses the
        override in place of the fixed class multiplier; everything else is
        returned unchanged.

        Returns:
            New adjusted rewards dictionary
        """
        key = RewardCalculator._key(character_class)
        if not class_bonuses or key is None:
            return dict(adjusted)

        overrides = class_bonuses.get(key)
        if not isinstance(overrides, dict):
            return dict(adjusted)

        multiplier = RewardCalculator.get_difficulty_multiplier(difficulty)
        result = dict(adjusted)
        for field, (base_key, bonus_key) in RewardCalculator.REWARD_FIELDS.items():
            override = overrides.get(bonus_key, overrides.get(field))
            if override is None:
                continue
            amount = base.get(base_key) or 0
            result[field] = round(amount * float(override) * multiplier, 2)

        logger.debug(f"Template class bonus override for {key}: {overrides}")
        return result

    @staticmethod
    def calculate_final_payout(
        base_rewards: Dict[str, Any],
        adjusted: Dict[str, float],
        volunteer_bonus: Optional[float],
        streak_bonus: Optional[float]
    ) -> Dict[str, int]:
        """
        Combine adjusted rewards with volunteer and streak bonuses.

        Bonuses are fractions of the BASE reward, not of the adjusted reward:
        Total = Adjusted + Base*Vol + Base*Str, rounded to an integer.

        Example:
            >>> RewardCalculator.calculate_final_payout(
            ...     {"gold_reward": 60, "xp_reward": 0}, {"gold": 69.0, "xp": 0.0}, 0.2, 0.05
            ... )
            {'gold': 84, 'xp': 0}
        """
        volunteer = volunteer_bonus or 0
        streak = streak_bonus or 0
        base_gold = base_rewards.get("gold_reward") or 0
        base_xp = base_rewards.get("xp_reward") or 0

        return {
            "gold": int(round(adjusted.get("gold", 0) + base_gold * volunteer + base_gold * streak)),
            "xp": int(round(adjusted.get("xp", 0) + base_xp * volunteer + base_xp * streak)),
        }

    @staticmethod
    def get_xp_required_for_level(level: int) -> int:
        """Total XP needed to reach a level: 50 * (level - 1) ** 2."""
        return 50 * (level - 1) ** 2

    @staticmethod
    def calculate_level_up(
        current_xp: int,
        gained_xp: int,
        current_level: int
    ) -> Optional[Dict[str, int]]:
        """
        Detect level gains from an XP grant.

        Scans forward from current_level while the next threshold is covered,
        so one grant can cross several levels.

        Returns:
            None if no level is gained, else {"previous_level", "new_level"}

        Example:
            >>> RewardCalculator.calculate_level_up(10, 5, 1) is None
            True
        """
        total_xp = current_xp + gained_xp
        new_level = current_level
        ceiling = current_level + Config.MAX_LEVEL_SCAN

        while (
            new_level < ceiling
            and RewardCalculator.get_xp_required_for_level(new_level + 1) <= total_xp
        ):
            new_level += 1

        if new_level == current_level:
            return None

        return {"previous_level": current_level, "new_level": new_level}

    @staticmethod
    def calculate_level_from_total_xp(total_xp: int) -> int:
        """
        Highest level whose threshold is covered by lifetime XP.

        Used by the level backfill; closed form of the quadratic curve.
        """
        if total_xp <= 0:
            return Config.DEFAULT_LEVEL

        level = int(math.isqrt(total_xp // 50)) + 1
        while RewardCalculator.get_xp_required_for_level(level + 1) <= total_xp:
            level += 1
        return level
