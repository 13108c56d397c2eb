"""Tests for RewardService store purchases and Guild Master review.

This module tests:
- Debit at redemption with a STORE_PURCHASE ledger entry
- Insufficient gold, inactive and foreign-family rewards
- Refund on denial of a PENDING redemption
- APPROVED / FULFILLED transitions without gold movement
- Status validation and finality of denials
"""

import pytest

from chorequest.database.models import RedemptionStatus, TransactionLog, TransactionType
from chorequest.exceptions import (
    CharacterNotFoundError,
    InsufficientGoldError,
    RewardNotFoundError,
    ValidationError,
)
from chorequest.services import QuestRepository, RewardService
from sqlalchemy import select


async def ledger_types(session, character_id):
    await session.flush()
    result = await session.execute(
        select(TransactionLog)
        .where(TransactionLog.character_id == character_id)
        .order_by(TransactionLog.timestamp)
    )
    return [(entry.transaction_type, entry.gold_change) for entry in result.scalars().all()]


# ============================================================================
# REDEEM
# ============================================================================


class TestRedeemReward:
    """Hero buys a reward with gold."""

    async def test_redeem_debits_gold(self, session, family, make_character, make_reward, events) -> None:
        """Gold is taken at purchase and a PENDING redemption is created."""
        hero = await make_character(gold=120)
        reward = await make_reward(family, cost=50)

        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id, family.id)

        assert redemption.status == RedemptionStatus.PENDING
        assert redemption.cost == 50
        assert redemption.reward_name == reward.name
        assert redemption.user_id == hero.user_id

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 70
        assert await ledger_types(session, hero.id) == [(TransactionType.STORE_PURCHASE, -50)]
        assert events[-1][0] == "reward_redeemed"

    async def test_exact_balance_is_enough(self, session, family, make_character, make_reward) -> None:
        """A hero can spend down to zero."""
        hero = await make_character(gold=50)
        reward = await make_reward(family, cost=50)

        await RewardService.redeem_reward(session, reward.id, hero.user_id)

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 0

    async def test_insufficient_gold(self, session, family, make_character, make_reward) -> None:
        """Short heroes are refused and keep their gold."""
        hero = await make_character(gold=30)
        reward = await make_reward(family, cost=50)

        with pytest.raises(InsufficientGoldError) as exc_info:
            await RewardService.redeem_reward(session, reward.id, hero.user_id)

        assert exc_info.value.required == 50
        assert exc_info.value.current == 30
        assert str(exc_info.value) == "Insufficient gold: need 50, have 30"

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 30
        assert await ledger_types(session, hero.id) == []

    async def test_inactive_reward(self, session, family, make_character, make_reward) -> None:
        """Retired rewards cannot be bought."""
        hero = await make_character(gold=100)
        reward = await make_reward(family, is_active=False)

        with pytest.raises(RewardNotFoundError):
            await RewardService.redeem_reward(session, reward.id, hero.user_id)

    async def test_reward_from_another_family(self, session, family, make_character, make_reward) -> None:
        """A reward outside the caller's family looks like a missing one."""
        hero = await make_character(gold=100)
        reward = await make_reward(family)

        with pytest.raises(RewardNotFoundError):
            await RewardService.redeem_reward(session, reward.id, hero.user_id, family_id="other-family")

    async def test_user_without_character(self, session, family, make_reward) -> None:
        """Users need a character to buy anything."""
        reward = await make_reward(family)

        with pytest.raises(CharacterNotFoundError):
            await RewardService.redeem_reward(session, reward.id, "no-such-user")


# ============================================================================
# REVIEW
# ============================================================================


class TestUpdateRedemptionStatus:
    """Guild Master decisions on redemptions."""

    async def test_deny_refunds(self, session, family, make_character, make_reward, events) -> None:
        """Denying a PENDING redemption returns the gold with a ledger entry."""
        hero = await make_character(gold=100)
        reward = await make_reward(family, cost=40)
        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id)

        updated = await RewardService.update_redemption_status(
            session, redemption.id, RedemptionStatus.DENIED, "gm-user", notes="Not this week"
        )

        assert updated.status == RedemptionStatus.DENIED
        assert updated.approved_by == "gm-user"
        assert updated.notes == "Not this week"
        assert updated.fulfilled_at is None

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 100
        assert await ledger_types(session, hero.id) == [
            (TransactionType.STORE_PURCHASE, -40),
            (TransactionType.REWARD_REFUND, 40),
        ]
        assert events[-1] == ("redemption_updated", {
            "redemption_id": redemption.id,
            "user_id": hero.user_id,
            "status": "DENIED",
        })

    async def test_approve_and_fulfill_move_no_gold(self, session, family, make_character, make_reward) -> None:
        """Only a denial moves gold."""
        hero = await make_character(gold=100)
        reward = await make_reward(family, cost=40)
        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id)

        approved = await RewardService.update_redemption_status(
            session, redemption.id, "APPROVED", "gm-user"
        )
        assert approved.status == RedemptionStatus.APPROVED
        assert approved.approved_at is not None

        fulfilled = await RewardService.update_redemption_status(
            session, redemption.id, RedemptionStatus.FULFILLED, "gm-user"
        )
        assert fulfilled.status == RedemptionStatus.FULFILLED
        assert fulfilled.fulfilled_at is not None

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 60

    async def test_deny_after_approval_does_not_refund(
        self, session, family, make_character, make_reward
    ) -> None:
        """Refunds only apply to redemptions still PENDING."""
        hero = await make_character(gold=100)
        reward = await make_reward(family, cost=40)
        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id)
        await RewardService.update_redemption_status(session, redemption.id, "APPROVED", "gm-user")

        await RewardService.update_redemption_status(session, redemption.id, "DENIED", "gm-user")

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 60

    @pytest.mark.parametrize("status", ["APPROVED", "FULFILLED", "DENIED"])
    async def test_denied_redemption_is_final(
        self, session, family, make_character, make_reward, status
    ) -> None:
        """A refunded redemption cannot be approved, fulfilled or refunded again."""
        hero = await make_character(gold=100)
        reward = await make_reward(family, cost=40)
        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id)
        await RewardService.update_redemption_status(session, redemption.id, "DENIED", "gm-user")

        with pytest.raises(ValidationError) as exc_info:
            await RewardService.update_redemption_status(session, redemption.id, status, "gm-user")

        assert exc_info.value.field == "status"
        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 100
        assert redemption.status == RedemptionStatus.DENIED
        assert await ledger_types(session, hero.id) == [
            (TransactionType.STORE_PURCHASE, -40),
            (TransactionType.REWARD_REFUND, 40),
        ]

    @pytest.mark.parametrize("status", ["PENDING", "REFUNDED", ""])
    async def test_invalid_status(self, session, family, make_character, make_reward, status) -> None:
        """Only APPROVED, DENIED and FULFILLED are review decisions."""
        hero = await make_character(gold=100)
        reward = await make_reward(family)
        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id)

        with pytest.raises(ValidationError) as exc_info:
            await RewardService.update_redemption_status(session, redemption.id, status, "gm-user")

        assert exc_info.value.field == "status"

    async def test_unknown_redemption(self, session) -> None:
        """Missing redemptions raise NotFound."""
        with pytest.raises(RewardNotFoundError):
            await RewardService.update_redemption_status(session, "missing", "APPROVED", "gm-user")

    async def test_redemption_from_another_family(self, session, family, make_character, make_reward) -> None:
        """Guild Masters can only review their own family's redemptions."""
        hero = await make_character(gold=100)
        reward = await make_reward(family)
        redemption = await RewardService.redeem_reward(session, reward.id, hero.user_id)

        with pytest.raises(RewardNotFoundError):
            await RewardService.update_redemption_status(
                session, redemption.id, "DENIED", "gm-user", family_id="other-family"
            )

        hero = await QuestRepository.get_character(session, hero.id)
        assert hero.gold == 50
