from typing import Optional, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update

from chorequest.database.models.character import Character
from chorequest.database.models.enums import RedemptionStatus, TransactionType
from chorequest.database.models.reward import Reward, RewardRedemption
from chorequest.exceptions import (
    RewardNotFoundError,
    InsufficientGoldError,
    ValidationError,
)
from chorequest.services.event_bus import EventBus
from chorequest.services.logger import get_logger
from chorequest.services.quest_repository import QuestRepository
from chorequest.services.transaction_logger import TransactionLogger
from chorequest.utils.time_utils import utcnow

logger = get_logger(__name__)


class RewardService:
    """
    Gold side of the reward store: purchase debit and denial refund.

    The cost is taken when the hero redeems, so gold cannot be spent twice
    while a Guild Master reviews the request. Denying a PENDING redemption
    refunds it. Every gold movement writes a ledger entry.

    Redemption Flow:
        redeem -> PENDING (gold debited, STORE_PURCHASE)
        PENDING -> DENIED (gold refunded, REWARD_REFUND)
        PENDING -> APPROVED -> FULFILLED (no gold movement)

    Usage:
        >>> async with DatabaseService.get_transaction() as session:
        ...     redemption = await RewardService.redeem_reward(session, reward_id, user_id, family_id)
        >>> async with DatabaseService.get_transaction() as session:
        ...     await RewardService.update_redemption_status(
        ...         session, redemption.id, RedemptionStatus.DENIED, gm_user_id
        ...     )
    """

    REVIEW_STATUSES = frozenset({
        RedemptionStatus.APPROVED,
        RedemptionStatus.DENIED,
        RedemptionStatus.FULFILLED,
    })

    @staticmethod
    async def redeem_reward(
        session: AsyncSession,
        reward_id: str,
        user_id: str,
        family_id: Optional[str] = None
    ) -> RewardRedemption:
        """
        Buy a reward with gold.

        Args:
            session: Database session (transaction managed by caller)
            reward_id: Reward to buy
            user_id: Purchasing user
            family_id: Caller's family; when given the reward must belong to it

        Returns:
            New PENDING RewardRedemption

        Raises:
            RewardNotFoundError: Reward missing, inactive or in another family
            CharacterNotFoundError: User has no character
            InsufficientGoldError: Character cannot afford the reward
        """
        reward = await session.get(Reward, reward_id)
        if reward is None or not reward.is_active:
            raise RewardNotFoundError(reward_id)
        if family_id is not None and reward.family_id != family_id:
            raise RewardNotFoundError(reward_id)

        character = await QuestRepository.get_character_by_user_id(session, user_id)

        result = await session.execute(
            update(Character)
            .where(Character.id == character.id, Character.gold >= reward.cost)
            .values(gold=Character.gold - reward.cost, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            character = await QuestRepository.get_character(session, character.id)
            raise InsufficientGoldError(character.id, reward.cost, character.gold)

        character = await QuestRepository.get_character(session, character.id)

        redemption = RewardRedemption(
            user_id=user_id,
            reward_id=reward.id,
            reward_name=reward.name,
            cost=reward.cost,
            status=RedemptionStatus.PENDING
        )
        session.add(redemption)
        await session.flush()

        await TransactionLogger.log_transaction(
            session=session,
            character=character,
            transaction_type=TransactionType.STORE_PURCHASE,
            gold_change=-reward.cost,
            related_id=redemption.id,
            description=f"Redeemed reward: {reward.name}",
            details={"reward_id": reward.id, "cost": reward.cost}
        )

        logger.info(
            f"User {user_id} redeemed reward {reward.id} for {reward.cost} gold "
            f"(remaining {character.gold})"
        )

        await EventBus.publish("reward_redeemed", {
            "redemption_id": redemption.id,
            "reward_id": reward.id,
            "user_id": user_id,
            "cost": reward.cost,
        })

        return redemption

    @staticmethod
    async def update_redemption_status(
        session: AsyncSession,
        redemption_id: str,
        status: Any,
        approver_id: str,
        notes: Optional[str] = None,
        family_id: Optional[str] = None
    ) -> RewardRedemption:
        """
        Guild Master review of a redemption.

        Only a DENIED decision on a PENDING redemption moves gold (full refund).

        Raises:
            RewardNotFoundError: Redemption missing or in another family
            ValidationError: status is not APPROVED, DENIED or FULFILLED,
                or the redemption was already denied
        """
        try:
            new_status = RedemptionStatus(getattr(status, "value", status))
        except ValueError as e:
            raise ValidationError("status", f"Unknown redemption status: {status}") from e
        if new_status not in RewardService.REVIEW_STATUSES:
            raise ValidationError("status", f"Cannot move a redemption to {new_status.value}")

        redemption = await session.get(RewardRedemption, redemption_id)
        if redemption is None:
            raise RewardNotFoundError(redemption_id, "Redemption not found")

        if family_id is not None:
            reward = await session.get(Reward, redemption.reward_id)
            if reward is None or reward.family_id != family_id:
                raise RewardNotFoundError(redemption_id, "Redemption not found")

        previous_status = redemption.status
        if previous_status == RedemptionStatus.DENIED:
            # the refund already went out
            raise ValidationError("status", "Denied redemptions cannot be reviewed again")

        now = utcnow()

        if new_status == RedemptionStatus.DENIED and previous_status == RedemptionStatus.PENDING:
            character = await QuestRepository.get_character_by_user_id(session, redemption.user_id)
            character = await QuestRepository.update_character(
                session, character.id, {"gold": Character.gold + redemption.cost}
            )
            await TransactionLogger.log_transaction(
                session=session,
                character=character,
                transaction_type=TransactionType.REWARD_REFUND,
                gold_change=redemption.cost,
                related_id=redemption.id,
                description=f"Refund for denied reward: {redemption.reward_name}",
                details={"reward_id": redemption.reward_id, "cost": redemption.cost}
            )
            logger.info(f"Refunded {redemption.cost} gold to user {redemption.user_id}")

        redemption.status = new_status
        redemption.approved_by = approver_id
        redemption.approved_at = now
        redemption.fulfilled_at = now if new_status == RedemptionStatus.FULFILLED else None
        redemption.notes = notes
        await session.flush()

        logger.info(
            f"Redemption {redemption_id} {getattr(previous_status, 'value', previous_status)} -> "
            f"{new_status.value} by {approver_id}"
        )

        await EventBus.publish("redemption_updated", {
            "redemption_id": redemption_id,
            "user_id": redemption.user_id,
            "status": new_status.value,
        })

        return redemption
