from typing import Dict, Any
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete

from chorequest.database.models.character import Character
from chorequest.database.models.enums import QuestStatus, RedemptionStatus
from chorequest.database.models.quest_instance import QuestInstance
from chorequest.database.models.quest_template import QuestTemplate
from chorequest.database.models.reward import RewardRedemption
from chorequest.database.models.transaction_log import TransactionLog
from chorequest.services.config_manager import ConfigManager
from chorequest.services.logger import get_logger
from chorequest.services.quest_repository import QuestRepository
from chorequest.services.reward_calculator import RewardCalculator
from chorequest.utils.time_utils import utcnow

logger = get_logger(__name__)


class AuditService:
    """
    Wallet reconciliation and maintenance over the transaction ledger.

    Replaying a character's ledger must reproduce its stored wallet. A
    discrepancy means a wallet write happened without its ledger entry
    (manual edits, admin tooling, a starting balance).

    Operations:
        - reconstruct_wallet: sum ledger deltas
        - audit_character: compare ledger sum with stored wallet
        - recalculate_gold: rebuild gold from approved quests and redemptions
        - backfill_levels: raise stored levels to match lifetime XP
        - cleanup_old_transactions: prune ledger rows past retention

    Usage:
        >>> report = await AuditService.audit_character(session, character.id)
        >>> report["balanced"]
        True
    """

    @staticmethod
    async def reconstruct_wallet(session: AsyncSession, character_id: str) -> Dict[str, int]:
        """Sum every ledger delta for a character."""
        await session.flush()
        result = await session.execute(
            select(
                func.coalesce(func.sum(TransactionLog.gold_change), 0),
                func.coalesce(func.sum(TransactionLog.xp_change), 0),
                func.coalesce(func.sum(TransactionLog.gems_change), 0),
                func.coalesce(func.sum(TransactionLog.honor_change), 0),
                func.count(TransactionLog.id),
            ).where(TransactionLog.character_id == character_id)
        )
        gold, xp, gems, honor, entries = result.one()

        return {
            "gold": int(gold),
            "xp": int(xp),
            "gems": int(gems),
            "honor_points": int(honor),
            "entries": int(entries),
        }

    @staticmethod
    async def audit_character(session: AsyncSession, character_id: str) -> Dict[str, Any]:
        """
        Compare the ledger replay with the stored wallet.

        Returns:
            Dictionary with:
                - stored (dict): Wallet on the character row
                - reconstructed (dict): Wallet from the ledger
                - discrepancy (dict): stored - reconstructed, per field
                - balanced (bool): No field differs
        """
        character = await QuestRepository.get_character(session, character_id)
        reconstructed = await AuditService.reconstruct_wallet(session, character_id)
        stored = character.wallet()

        discrepancy = {
            field: stored[field] - reconstructed[field]
            for field in ("gold", "xp", "gems", "honor_points")
        }
        balanced = not any(discrepancy.values())

        if balanced:
            logger.info(f"Audit OK for character {character_id} ({reconstructed['entries']} entries)")
        else:
            logger.warning(f"Audit discrepancy for character {character_id}: {discrepancy}")

        return {
            "character_id": character_id,
            "stored": stored,
            "reconstructed": reconstructed,
            "discrepancy": discrepancy,
            "balanced": balanced,
        }

    @staticmethod
    async def recalculate_gold(session: AsyncSession, character_id: str) -> Dict[str, Any]:
        """
        Rebuild expected gold from source rows instead of the ledger.

        Earned: every APPROVED quest credited to the character, repriced with
        the payout formula (adjusted + base*volunteer + base*streak).
        Spent: every redemption that was not DENIED.
        """
        character = await QuestRepository.get_character(session, character_id)

        result = await session.execute(
            select(QuestInstance, QuestTemplate)
            .outerjoin(QuestTemplate, QuestTemplate.id == QuestInstance.template_id)
            .where(
                QuestInstance.status == QuestStatus.APPROVED,
                (QuestInstance.volunteered_by == character.id)
                | (
                    QuestInstance.volunteered_by.is_(None)
                    & (QuestInstance.assigned_to_id == character.user_id)
                )
            )
        )

        earned = 0
        quests = 0
        for quest, template in result.all():
            base = quest.base_rewards()
            adjusted = RewardCalculator.calculate_quest_rewards(
                base, quest.difficulty, character.character_class, character.level
            )
            if template is not None:
                adjusted = RewardCalculator.apply_template_class_bonuses(
                    adjusted, base, template.class_bonuses, character.character_class, quest.difficulty
                )
            payout = RewardCalculator.calculate_final_payout(
                base, adjusted, quest.volunteer_bonus, quest.streak_bonus
            )
            earned += payout["gold"]
            quests += 1

        result = await session.execute(
            select(func.coalesce(func.sum(RewardRedemption.cost), 0)).where(
                RewardRedemption.user_id == character.user_id,
                RewardRedemption.status != RedemptionStatus.DENIED
            )
        )
        spent = int(result.scalar_one())

        expected = earned - spent
        return {
            "character_id": character_id,
            "quests": quests,
            "earned": earned,
            "spent": spent,
            "expected_gold": expected,
            "stored_gold": character.gold,
            "discrepancy": character.gold - expected,
        }

    @staticmethod
    async def backfill_levels(session: AsyncSession) -> int:
        """
        Raise stored levels to the level implied by lifetime XP.

        Levels are never lowered.

        Returns:
            Number of characters updated
        """
        result = await session.execute(select(Character))
        updated = 0

        for character in result.scalars().all():
            xp = max(0, character.xp or 0)
            stored_level = character.level if character.level and character.level > 0 else 1
            derived_level = RewardCalculator.calculate_level_from_total_xp(xp)
            next_level = max(stored_level, derived_level)

            if next_level == character.level:
                continue

            character.level = next_level
            character.updated_at = utcnow()
            updated += 1
            logger.info(f"Backfilled character {character.id}: level {stored_level} -> {next_level} (XP: {xp})")

        await session.flush()
        logger.info(f"Level backfill complete, {updated} character(s) updated")
        return updated

    @staticmethod
    async def cleanup_old_transactions(session: AsyncSession, cutoff_days: int = None) -> int:
        """
        Delete ledger rows older than the retention window.

        Audits only balance for characters whose history is fully retained.

        Args:
            cutoff_days: Age in days (default ledger.retention_days)

        Returns:
            Number of rows deleted
        """
        if cutoff_days is None:
            cutoff_days = ConfigManager.get("ledger.retention_days", 365)

        cutoff_date = utcnow() - timedelta(days=cutoff_days)
        result = await session.execute(
            delete(TransactionLog)
            .where(TransactionLog.timestamp < cutoff_date)
            .execution_options(synchronize_session=False)
        )

        deleted = result.rowcount or 0
        logger.info(f"Cleaned up {deleted} ledger entries older than {cutoff_days} days")
        return deleted
