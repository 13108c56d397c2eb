"""Tests for AuditService ledger reconciliation and maintenance.

This module tests:
- Ledger replay matches the stored wallet after real operations
- Discrepancy detection for untracked wallet writes
- Gold recalculation from approved quests and redemptions
- Level backfill from lifetime XP
- Ledger retention cleanup
"""

from datetime import timedelta

from chorequest.database.models import Character, TransactionLog, TransactionType
from chorequest.services import (
    AuditService,
    QuestInstanceService,
    QuestRepository,
    RewardService,
)
from chorequest.utils.time_utils import utcnow


# ============================================================================
# WALLET AUDIT
# ============================================================================


class TestAuditCharacter:
    """Ledger replay vs. stored wallet."""

    async def test_balanced_after_quest_and_store(
        self, session, family, make_character, make_quest, make_reward
    ) -> None:
        """Approve, redeem and deny all keep the ledger in step with the wallet."""
        hero = await make_character()
        quest = await make_quest(family, xp_reward=100, gold_reward=60)
        reward = await make_reward(family, cost=20)

        await QuestInstanceService.claim_quest(session, quest.id, hero.id)
        await QuestInstanceService.approve_quest(session, quest.id)
        first = await RewardService.redeem_reward(session, reward.id, hero.user_id)
        await RewardService.redeem_reward(session, reward.id, hero.user_id)
        await RewardService.update_redemption_status(session, first.id, "DENIED", "gm-user")

        report = await AuditService.audit_character(session, hero.id)

        # 60*1.05 + 60*0.2 = 75 earned, one 20 gold purchase kept
        assert report["stored"]["gold"] == 55
        assert report["reconstructed"]["gold"] == 55
        assert report["reconstructed"]["xp"] == 125
        assert report["reconstructed"]["entries"] == 4
        assert report["balanced"] is True
        assert report["discrepancy"] == {"gold": 0, "xp": 0, "gems": 0, "honor_points": 0}

    async def test_untracked_write_is_flagged(self, session, make_character) -> None:
        """A wallet change without a ledger entry shows up as a discrepancy."""
        hero = await make_character()
        await QuestRepository.update_character(session, hero.id, {"gold": Character.gold + 10})

        report = await AuditService.audit_character(session, hero.id)

        assert report["balanced"] is False
        assert report["discrepancy"]["gold"] == 10
        assert report["reconstructed"]["entries"] == 0

    async def test_empty_ledger(self, session, make_character) -> None:
        """A new character reconstructs to zeros."""
        hero = await make_character()

        assert await AuditService.reconstruct_wallet(session, hero.id) == {
            "gold": 0, "xp": 0, "gems": 0, "honor_points": 0, "entries": 0,
        }


# ============================================================================
# GOLD RECALCULATION
# ============================================================================


class TestRecalculateGold:
    """Expected gold from source rows."""

    async def test_recalculate_from_quests_and_redemptions(
        self, session, family, make_character, make_quest, make_reward
    ) -> None:
        """Approved quests add their payout; denied redemptions cost nothing."""
        hero = await make_character()
        quest = await make_quest(family, xp_reward=100, gold_reward=60)
        kept = await make_reward(family, cost=50)
        refused = await make_reward(family, name="Pizza night", cost=20)

        await QuestInstanceService.claim_quest(session, quest.id, hero.id)
        await QuestInstanceService.approve_quest(session, quest.id)
        await RewardService.redeem_reward(session, kept.id, hero.user_id)
        denied = await RewardService.redeem_reward(session, refused.id, hero.user_id)
        await RewardService.update_redemption_status(session, denied.id, "DENIED", "gm-user")

        result = await AuditService.recalculate_gold(session, hero.id)

        assert result["quests"] == 1
        assert result["earned"] == 75
        assert result["spent"] == 50
        assert result["expected_gold"] == 25
        assert result["stored_gold"] == 25
        assert result["discrepancy"] == 0

    async def test_other_heroes_quests_ignored(self, session, family, make_character, make_quest) -> None:
        """Quests credited to someone else do not count."""
        hero = await make_character()
        other = await make_character()
        quest = await make_quest(family)
        await QuestInstanceService.claim_quest(session, quest.id, other.id)
        await QuestInstanceService.approve_quest(session, quest.id)

        result = await AuditService.recalculate_gold(session, hero.id)

        assert result["quests"] == 0
        assert result["expected_gold"] == 0


# ============================================================================
# MAINTENANCE
# ============================================================================


class TestBackfillLevels:
    """Stored levels are raised to match lifetime XP."""

    async def test_backfill_raises_only(self, session, make_character) -> None:
        """Characters behind the curve move up; ahead of it they stay."""
        behind = await make_character(xp=500, level=1)
        ahead = await make_character(xp=10, level=5)
        current = await make_character(xp=200, level=3)

        updated = await AuditService.backfill_levels(session)

        assert updated == 1
        assert (await QuestRepository.get_character(session, behind.id)).level == 4
        assert (await QuestRepository.get_character(session, ahead.id)).level == 5
        assert (await QuestRepository.get_character(session, current.id)).level == 3


class TestCleanupOldTransactions:
    """Ledger retention."""

    async def test_old_entries_removed(self, session, make_character) -> None:
        """Rows past the retention window are deleted, recent rows stay."""
        hero = await make_character()
        session.add(TransactionLog(
            character_id=hero.id, user_id=hero.user_id, transaction_type=TransactionType.BONUS_AWARD,
            gold_change=5, timestamp=utcnow() - timedelta(days=400),
        ))
        session.add(TransactionLog(
            character_id=hero.id, user_id=hero.user_id, transaction_type=TransactionType.BONUS_AWARD,
            gold_change=7, timestamp=utcnow() - timedelta(days=3),
        ))
        await session.flush()

        deleted = await AuditService.cleanup_old_transactions(session)

        assert deleted == 1
        wallet = await AuditService.reconstruct_wallet(session, hero.id)
        assert wallet["gold"] == 7
        assert wallet["entries"] == 1

    async def test_custom_cutoff(self, session, make_character) -> None:
        """An explicit cutoff overrides the configured retention."""
        hero = await make_character()
        session.add(TransactionLog(
            character_id=hero.id, transaction_type=TransactionType.BONUS_AWARD,
            gold_change=7, timestamp=utcnow() - timedelta(days=3),
        ))
        await session.flush()

        assert await AuditService.cleanup_old_transactions(session, cutoff_days=1) == 1
