from typing import Dict, Any, Optional, Tuple
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from chorequest.config import Config
from chorequest.database.models.character import Character
from chorequest.database.models.enums import QuestStatus, TransactionType
from chorequest.database.models.quest_instance import QuestInstance
from chorequest.database.models.quest_template import QuestTemplate
from chorequest.exceptions import (
    ChoreQuestException,
    InvalidStateError,
    InvalidOperationError,
    AntiHoardingError,
    ForbiddenError,
    WriteFailureError,
    CharacterNotFoundError,
)
from chorequest.services.event_bus import EventBus
from chorequest.services.logger import get_logger
from chorequest.services.quest_repository import QuestRepository
from chorequest.services.reward_calculator import RewardCalculator
from chorequest.services.streak_service import StreakService
from chorequest.services.transaction_logger import TransactionLogger
from chorequest.utils.time_utils import utcnow

logger = get_logger(__name__)


class QuestInstanceService:
    """
    Quest lifecycle state machine and reward payout.

    Handles the family quest pool (claim, release, GM assignment), hero
    completion, Guild Master review (approve, deny, cancel) and the
    expiry sweep for recurring quests.

    State Machine (FAMILY quests):
        AVAILABLE --claim--> CLAIMED --approve--> APPROVED
        CLAIMED --release--> AVAILABLE
        AVAILABLE --assign--> PENDING --approve--> APPROVED
        CLAIMED/PENDING/IN_PROGRESS --complete--> COMPLETED --deny--> PENDING
        past cycle_end_date --expire--> MISSED

    Anti-Hoarding:
        A hero holds at most one active FAMILY quest, tracked by
        Character.active_family_quest_id. Set on claim/assign, cleared on
        release, approval, cancellation and expiry.

    Consistency:
        Every status transition is a conditional UPDATE on the status that
        was read; a lost race raises ConcurrentModificationError. When the
        second of two related writes fails, the first is reverted with a
        compensating write and the ORIGINAL error is raised as
        WriteFailureError. Callers should still wrap each call in
        DatabaseService.get_transaction() so both writes commit together.

    Usage:
        >>> async with DatabaseService.get_transaction() as session:
        ...     quest = await QuestInstanceService.claim_quest(session, quest_id, character_id)
        >>> async with DatabaseService.get_transaction() as session:
        ...     quest = await QuestInstanceService.approve_quest(session, quest_id)
    """

    CLAIMABLE_STATUSES = frozenset({QuestStatus.AVAILABLE})
    RELEASABLE_STATUSES = frozenset({QuestStatus.CLAIMED})
    COMPLETABLE_STATUSES = frozenset({
        QuestStatus.CLAIMED,
        QuestStatus.PENDING,
        QuestStatus.IN_PROGRESS,
    })
    APPROVABLE_STATUSES = frozenset({
        QuestStatus.CLAIMED,
        QuestStatus.PENDING,
        QuestStatus.IN_PROGRESS,
        QuestStatus.COMPLETED,
    })
    UNCANCELLABLE_STATUSES = frozenset({QuestStatus.APPROVED, QuestStatus.COMPLETED})
    EXPIRABLE_STATUSES = frozenset({
        QuestStatus.PENDING,
        QuestStatus.IN_PROGRESS,
        QuestStatus.AVAILABLE,
        QuestStatus.CLAIMED,
    })

    CLAIM_FIELDS = ("status", "assigned_to_id", "volunteered_by", "volunteer_bonus")

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    @staticmethod
    def _snapshot(quest: QuestInstance) -> Dict[str, Any]:
        """Pool fields of a quest as read, for compensating writes."""
        return {field: getattr(quest, field) for field in QuestInstanceService.CLAIM_FIELDS}

    @staticmethod
    def _ensure_family_pool_quest(quest: QuestInstance, allowed: frozenset, action: str, verb: str) -> None:
        if quest.status not in allowed:
            raise InvalidStateError(action, quest.status)
        if not quest.is_family_quest():
            raise InvalidOperationError(f"Only family quests can be {verb}")

    @staticmethod
    async def _write_character_or_revert(
        session: AsyncSession,
        quest: QuestInstance,
        written_status: QuestStatus,
        revert_fields: Dict[str, Any],
        character_id: str,
        character_fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Character:
        """
        Second write of a pool transition.

        If the character write fails, the quest row is put back to
        revert_fields (conditioned on the status just written) and the
        character write's error is raised.
        """
        try:
            return await QuestRepository.update_character(
                session, character_id, character_fields, expected=expected
            )
        except Exception as e:
            logger.error(
                f"Character update failed for quest {quest.id}, reverting quest: {e}",
                exc_info=True
            )
            rollback_error = None
            try:
                await QuestRepository.update_quest(
                    session, quest.id, revert_fields, expected_status=written_status
                )
            except Exception as rollback_exc:
                rollback_error = rollback_exc
                logger.critical(
                    f"Compensating quest write failed for quest {quest.id}: {rollback_exc}"
                )
            raise WriteFailureError("update character", e, rollback_error) from e

    @staticmethod
    async def _resolve_character(session: AsyncSession, quest: QuestInstance) -> Character:
        """Character credited for a quest: volunteer first, then owning user."""
        if quest.volunteered_by:
            return await QuestRepository.get_character(session, quest.volunteered_by)
        return await QuestRepository.get_character_by_user_id(session, quest.assigned_to_id)

    @staticmethod
    async def _apply_streak(
        session: AsyncSession,
        quest: QuestInstance,
        character: Character,
        template: Optional[QuestTemplate],
        completed_at: datetime,
        timezone: str
    ) -> Tuple[int, float, Optional[Dict[str, Any]]]:
        """
        Advance or break the streak for an approved completion.

        Returns:
            (streak_count, streak_bonus, previous streak values for rollback)
        """
        if not quest.template_id:
            return 0, 0.0, None

        streak = await StreakService.get_streak(session, character.id, quest.template_id)
        previous = {
            "current_streak": streak.current_streak,
            "longest_streak": streak.longest_streak,
            "last_completed_date": streak.last_completed_date,
        }
        recurrence = template.recurrence_pattern if template is not None else None

        if StreakService.validate_consecutive_completion(streak, recurrence, completed_at, timezone):
            streak = await StreakService.increment_streak(session, streak, completed_at)
            return streak.current_streak, StreakService.calculate_streak_bonus(streak.current_streak), previous

        await StreakService.reset_streak(session, streak)
        return 0, 0.0, previous

    @staticmethod
    async def _restore_streak(
        session: AsyncSession,
        character_id: str,
        template_id: Optional[str],
        previous: Optional[Dict[str, Any]]
    ) -> None:
        if previous is None or not template_id:
            return
        streak = await StreakService.get_streak(session, character_id, template_id)
        for field, value in previous.items():
            setattr(streak, field, value)
        await session.flush()

    # ========================================================================
    # FAMILY QUEST POOL
    # ========================================================================

    @staticmethod
    async def claim_quest(
        session: AsyncSession,
        quest_id: str,
        character_id: str
    ) -> QuestInstance:
        """
        Hero volunteers for an AVAILABLE family quest.

        Claiming grants the volunteer bonus (20% of base rewards at approval).

        Args:
            session: Database session (transaction managed by caller)
            quest_id: Quest to claim
            character_id: Claiming hero

        Returns:
            Claimed QuestInstance (status CLAIMED)

        Raises:
            QuestNotFoundError: Quest does not exist
            InvalidStateError: Quest is not AVAILABLE
            InvalidOperationError: Quest is not a FAMILY quest
            CharacterNotFoundError: Character does not exist
            AntiHoardingError: Hero already holds a family quest
            ConcurrentModificationError: Quest was taken in the meantime
            WriteFailureError: Character update failed (quest reverted)

        Example:
            >>> quest = await QuestInstanceService.claim_quest(session, quest_id, hero.id)
            >>> quest.volunteer_bonus
            0.2
        """
        quest = await QuestRepository.get_quest(session, quest_id)
        QuestInstanceService._ensure_family_pool_quest(
            quest, QuestInstanceService.CLAIMABLE_STATUSES, "available for claiming", "claimed"
        )

        character = await QuestRepository.get_character(session, character_id)
        if character.has_active_family_quest():
            raise AntiHoardingError(
                character_id,
                character.active_family_quest_id,
                "Release or complete it before claiming another."
            )

        volunteer_bonus = Config.VOLUNTEER_BONUS
        snapshot = QuestInstanceService._snapshot(quest)

        quest = await QuestRepository.update_quest(
            session,
            quest_id,
            {
                "status": QuestStatus.CLAIMED,
                "assigned_to_id": character.user_id,
                "volunteered_by": character_id,
                "volunteer_bonus": volunteer_bonus,
            },
            expected_status=QuestStatus.AVAILABLE
        )

        await QuestInstanceService._write_character_or_revert(
            session,
            quest,
            QuestStatus.CLAIMED,
            snapshot,
            character_id,
            {"active_family_quest_id": quest_id},
            expected={"active_family_quest_id": None}
        )

        logger.info(f"Quest {quest_id} claimed by character {character_id} (bonus {volunteer_bonus})")

        await EventBus.publish("quest_claimed", {
            "quest_id": quest_id,
            "character_id": character_id,
            "family_id": quest.family_id,
            "volunteer_bonus": volunteer_bonus,
        })

        return quest

    @staticmethod
    async def release_quest(
        session: AsyncSession,
        quest_id: str,
        character_id: str
    ) -> QuestInstance:
        """
        Hero gives a claimed family quest back to the pool.

        Only the hero who claimed the quest may release it.

        Raises:
            QuestNotFoundError: Quest does not exist
            InvalidStateError: Quest is not CLAIMED
            InvalidOperationError: Quest is not a FAMILY quest
            ForbiddenError: character_id did not claim the quest
            WriteFailureError: Character update failed (quest reverted)
        """
        quest = await QuestRepository.get_quest(session, quest_id)
        QuestInstanceService._ensure_family_pool_quest(
            quest, QuestInstanceService.RELEASABLE_STATUSES, "releasable", "released"
        )

        if quest.volunteered_by != character_id:
            raise ForbiddenError("Only the hero who claimed this quest can release it")

        snapshot = QuestInstanceService._snapshot(quest)

        quest = await QuestRepository.update_quest(
            session,
            quest_id,
            {
                "status": QuestStatus.AVAILABLE,
                "assigned_to_id": None,
                "volunteered_by": None,
                "volunteer_bonus": None,
            },
            expected_status=snapshot["status"]
        )

        await QuestInstanceService._write_character_or_revert(
            session,
            quest,
            QuestStatus.AVAILABLE,
            snapshot,
            character_id,
            {"active_family_quest_id": None}
        )

        logger.info(f"Quest {quest_id} released by character {character_id}")

        await EventBus.publish("quest_released", {
            "quest_id": quest_id,
            "character_id": character_id,
            "family_id": quest.family_id,
        })

        return quest

    @staticmethod
    async def assign_quest(
        session: AsyncSession,
        quest_id: str,
        character_id: str,
        assigner_id: str
    ) -> QuestInstance:
        """
        Guild Master hands an AVAILABLE family quest to a hero.

        Unlike claiming, assignment carries no volunteer bonus. Checking that
        assigner_id is a Guild Master is the caller's job.

        Raises:
            QuestNotFoundError: Quest does not exist
            InvalidStateError: Quest is not AVAILABLE
            InvalidOperationError: Quest is not a FAMILY quest
            CharacterNotFoundError: Character does not exist
            AntiHoardingError: Hero already holds a family quest
            WriteFailureError: Character update failed (quest reverted)
        """
        quest = await QuestRepository.get_quest(session, quest_id)
        QuestInstanceService._ensure_family_pool_quest(
            quest, QuestInstanceService.CLAIMABLE_STATUSES, "available for assignment", "assigned"
        )

        character = await QuestRepository.get_character(session, character_id)
        if character.has_active_family_quest():
            raise AntiHoardingError(
                character_id,
                character.active_family_quest_id,
                "They must complete or release it first."
            )

        snapshot = QuestInstanceService._snapshot(quest)

        quest = await QuestRepository.update_quest(
            session,
            quest_id,
            {
                "status": QuestStatus.PENDING,
                "assigned_to_id": character.user_id,
                "volunteered_by": character_id,
                "volunteer_bonus": None,
            },
            expected_status=QuestStatus.AVAILABLE
        )

        await QuestInstanceService._write_character_or_revert(
            session,
            quest,
            QuestStatus.PENDING,
            snapshot,
            character_id,
            {"active_family_quest_id": quest_id},
            expected={"active_family_quest_id": None}
        )

        logger.info(f"Quest {quest_id} assigned to character {character_id} by {assigner_id}")

        await EventBus.publish("quest_assigned", {
            "quest_id": quest_id,
            "character_id": character_id,
            "assigner_id": assigner_id,
            "family_id": quest.family_id,
        })

        return quest

    # ========================================================================
    # COMPLETION AND REVIEW
    # ========================================================================

    @staticmethod
    async def complete_quest(
        session: AsyncSession,
        quest_id: str,
        character_id: str
    ) -> QuestInstance:
        """
        Hero marks their quest done and submits it for Guild Master review.

        Raises:
            InvalidStateError: Quest is not CLAIMED/PENDING/IN_PROGRESS
            ForbiddenError: Quest belongs to another hero
        """
        quest = await QuestRepository.get_quest(session, quest_id)
        if quest.status not in QuestInstanceService.COMPLETABLE_STATUSES:
            raise InvalidStateError("ready for completion", quest.status)

        character = await QuestRepository.get_character(session, character_id)
        if quest.volunteered_by:
            is_owner = quest.volunteered_by == character.id
        else:
            is_owner = quest.assigned_to_id is not None and quest.assigned_to_id == character.user_id
        if not is_owner:
            raise ForbiddenError("Only the hero assigned to this quest can complete it")

        quest = await QuestRepository.update_quest(
            session,
            quest_id,
            {"status": QuestStatus.COMPLETED, "completed_at": utcnow()},
            expected_status=quest.status
        )

        logger.info(f"Quest {quest_id} completed by character {character_id}")

        await EventBus.publish("quest_completed", {
            "quest_id": quest_id,
            "character_id": character_id,
            "family_id": quest.family_id,
        })

        return quest

    @staticmethod
    async def deny_quest(session: AsyncSession, quest_id: str) -> QuestInstance:
        """Send a completed quest back to the hero (COMPLETED -> PENDING)."""
        quest = await QuestRepository.get_quest(session, quest_id)
        if quest.status != QuestStatus.COMPLETED:
            raise InvalidStateError("awaiting approval", quest.status)

        quest = await QuestRepository.update_quest(
            session,
            quest_id,
            {"status": QuestStatus.PENDING, "completed_at": None},
            expected_status=QuestStatus.COMPLETED
        )

        logger.info(f"Quest {quest_id} denied, returned to PENDING")

        await EventBus.publish("quest_denied", {
            "quest_id": quest_id,
            "family_id": quest.family_id,
        })

        return quest

    @staticmethod
    async def cancel_quest(session: AsyncSession, quest_id: str) -> Dict[str, Any]:
        """
        Guild Master removes a quest that has not been completed.

        Clears the active family quest of whoever holds it, then deletes the row.

        Returns:
            Dictionary with quest_id and pointers_cleared

        Raises:
            InvalidStateError: Quest is COMPLETED or APPROVED
        """
        quest = await QuestRepository.get_quest(session, quest_id)
        if quest.status in QuestInstanceService.UNCANCELLABLE_STATUSES:
            raise InvalidStateError("cancellable", quest.status)

        family_id = quest.family_id
        pointers_cleared = await QuestRepository.clear_active_quest_pointers(session, quest_id)
        await QuestRepository.delete_quest(session, quest_id, expected_status=quest.status)

        logger.info(f"Quest {quest_id} cancelled ({pointers_cleared} active pointers cleared)")

        await EventBus.publish("quest_cancelled", {
            "quest_id": quest_id,
            "family_id": family_id,
        })

        return {"quest_id": quest_id, "pointers_cleared": pointers_cleared}

    @staticmethod
    async def approve_quest(session: AsyncSession, quest_id: str) -> QuestInstance:
        """
        Guild Master approves a quest and pays the hero.

        Process:
            1. Validate status and assignment
            2. Resolve the credited character (volunteer, else owning user)
            3. Best-effort template and family reads
            4. Advance or break the streak (family timezone day boundaries)
            5. Class/difficulty adjustment, template class overrides
            6. Add volunteer and streak bonuses as fractions of BASE rewards
            7. Level-up check
            8. Character write (atomic increments, clears active quest)
            9. Quest write (APPROVED), conditioned on the status read
           10. QUEST_REWARD ledger entry

        If the quest write fails, the character write is compensated
        (wallet, level and active quest restored) and WriteFailureError raised.

        Returns:
            Approved QuestInstance with streak_count and streak_bonus set

        Raises:
            QuestNotFoundError: Quest does not exist
            InvalidStateError: Quest is not awaiting approval
            InvalidOperationError: Quest has no assigned hero
            CharacterNotFoundError: Credited character does not exist
            InvalidDifficultyError: Quest difficulty is not recognized
            WriteFailureError: A write failed after another succeeded

        Example:
            >>> quest = await QuestInstanceService.approve_quest(session, quest_id)
            >>> quest.status
            <QuestStatus.APPROVED: 'APPROVED'>
        """
        quest = await QuestRepository.get_quest(session, quest_id)
        if quest.status not in QuestInstanceService.APPROVABLE_STATUSES:
            raise InvalidStateError("awaiting approval", quest.status)

        if not quest.assigned_to_id and not quest.volunteered_by:
            raise InvalidOperationError("Quest is not assigned to a hero")

        read_status = quest.status
        character = await QuestInstanceService._resolve_character(session, quest)
        template = await QuestRepository.get_template(session, quest.template_id)
        family = await QuestRepository.get_family(session, quest.family_id)
        timezone = family.timezone if family is not None and family.timezone else Config.DEFAULT_TIMEZONE

        now = utcnow()
        completed_at = quest.completed_at or now

        # priced before the streak step so a bad difficulty leaves the streak untouched
        base_rewards = quest.base_rewards()
        adjusted = RewardCalculator.calculate_quest_rewards(
            base_rewards, quest.difficulty, character.character_class, character.level
        )
        if template is not None:
            adjusted = RewardCalculator.apply_template_class_bonuses(
                adjusted, base_rewards, template.class_bonuses,
                character.character_class, quest.difficulty
            )

        streak_count, streak_bonus, previous_streak = await QuestInstanceService._apply_streak(
            session, quest, character, template, completed_at, timezone
        )

        volunteer_bonus = quest.volunteer_bonus if quest.volunteered_by == character.id else None
        payout = RewardCalculator.calculate_final_payout(
            base_rewards, adjusted, volunteer_bonus, streak_bonus
        )

        level_up = RewardCalculator.calculate_level_up(character.xp, payout["xp"], character.level)

        previous_wallet = {
            "level": character.level,
            "active_family_quest_id": character.active_family_quest_id,
        }
        character_fields: Dict[str, Any] = {
            "gold": Character.gold + payout["gold"],
            "xp": Character.xp + payout["xp"],
        }
        if level_up:
            character_fields["level"] = level_up["new_level"]
        if character.active_family_quest_id == quest_id:
            character_fields["active_family_quest_id"] = None

        character_id = character.id
        try:
            character = await QuestRepository.update_character(session, character_id, character_fields)
        except Exception as e:
            logger.error(f"Character payout failed for quest {quest_id}: {e}")
            rollback_error = None
            try:
                await QuestInstanceService._restore_streak(
                    session, character_id, quest.template_id, previous_streak
                )
            except Exception as rollback_exc:
                rollback_error = rollback_exc
                logger.critical(f"Streak restore failed for quest {quest_id}: {rollback_exc}")
            raise WriteFailureError("update character", e, rollback_error) from e

        try:
            quest = await QuestRepository.update_quest(
                session,
                quest_id,
                {
                    "status": QuestStatus.APPROVED,
                    "completed_at": completed_at,
                    "approved_at": now,
                    "streak_count": streak_count,
                    "streak_bonus": streak_bonus,
                },
                expected_status=read_status
            )
        except Exception as e:
            logger.error(f"Quest write failed after paying character {character_id}, reverting: {e}")
            rollback_error = None
            try:
                await QuestRepository.update_character(session, character_id, {
                    "gold": Character.gold - payout["gold"],
                    "xp": Character.xp - payout["xp"],
                    **previous_wallet,
                })
                await QuestInstanceService._restore_streak(
                    session, character_id, quest.template_id, previous_streak
                )
            except Exception as rollback_exc:
                rollback_error = rollback_exc
                logger.critical(
                    f"Compensating character write failed for quest {quest_id}: {rollback_exc}"
                )
            raise WriteFailureError("approve quest", e, rollback_error) from e

        await TransactionLogger.log_transaction(
            session=session,
            character=character,
            transaction_type=TransactionType.QUEST_REWARD,
            gold_change=payout["gold"],
            xp_change=payout["xp"],
            related_id=quest_id,
            description=f"Quest approved: {quest.title}",
            details={
                "base_rewards": base_rewards,
                "adjusted_rewards": adjusted,
                "difficulty": getattr(quest.difficulty, "value", quest.difficulty),
                "character_class": getattr(character.character_class, "value", character.character_class),
                "volunteer_bonus": volunteer_bonus,
                "streak_count": streak_count,
                "streak_bonus": streak_bonus,
                "level_up": level_up,
            }
        )

        logger.info(
            f"Quest {quest_id} approved: character {character.id} earned "
            f"{payout['gold']} gold, {payout['xp']} xp (streak {streak_count}, bonus {streak_bonus})"
        )

        await EventBus.publish("quest_approved", {
            "quest_id": quest_id,
            "character_id": character.id,
            "family_id": quest.family_id,
            "gold": payout["gold"],
            "xp": payout["xp"],
            "streak_count": streak_count,
            "streak_bonus": streak_bonus,
        })

        if level_up:
            logger.info(
                f"Character {character.id} leveled up: "
                f"{level_up['previous_level']} -> {level_up['new_level']}"
            )
            await EventBus.publish("character_leveled_up", {
                "character_id": character.id,
                **level_up,
            })

        return quest

    # ========================================================================
    # EXPIRY
    # ========================================================================

    @staticmethod
    async def expire_quests(
        session: AsyncSession,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Mark unfinished recurring quests past their cycle as MISSED.

        Family quests give their holder's active quest slot back. Individual
        quests of templates that are not paused break the assignee's streak.
        A quest that cannot be processed is counted in "errors" and skipped.

        Returns:
            {
                "expired": {"individual": int, "family": int, "total": int},
                "streaks_broken": int,
                "pointers_cleared": int,
                "errors": int,
            }
        """
        now = now or utcnow()
        stats = {
            "expired": {"individual": 0, "family": 0, "total": 0},
            "streaks_broken": 0,
            "pointers_cleared": 0,
            "errors": 0,
        }

        result = await session.execute(
            select(QuestInstance, QuestTemplate)
            .outerjoin(QuestTemplate, QuestTemplate.id == QuestInstance.template_id)
            .where(
                QuestInstance.template_id.is_not(None),
                QuestInstance.cycle_end_date.is_not(None),
                QuestInstance.cycle_end_date < now,
                QuestInstance.status.in_(list(QuestInstanceService.EXPIRABLE_STATUSES))
            )
        )
        rows = result.all()

        for quest, template in rows:
            quest_id = quest.id
            try:
                quest = await QuestRepository.update_quest(
                    session, quest_id, {"status": QuestStatus.MISSED}, expected_status=quest.status
                )
            except ChoreQuestException as e:
                stats["errors"] += 1
                logger.warning(f"Skipping expiry of quest {quest_id}: {e}")
                continue

            stats["expired"]["total"] += 1

            if quest.is_family_quest():
                stats["expired"]["family"] += 1
                stats["pointers_cleared"] += await QuestRepository.clear_active_quest_pointers(
                    session, quest_id
                )
                continue

            stats["expired"]["individual"] += 1
            # a deleted template counts as not paused
            paused = template is not None and template.is_paused
            if paused or not (quest.volunteered_by or quest.assigned_to_id):
                continue

            try:
                character = await QuestInstanceService._resolve_character(session, quest)
            except CharacterNotFoundError as e:
                stats["errors"] += 1
                logger.warning(f"No character to break streak for missed quest {quest_id}: {e}")
                continue

            streak = await StreakService.get_streak(session, character.id, quest.template_id)
            if streak.current_streak > 0:
                await StreakService.reset_streak(session, streak)
                stats["streaks_broken"] += 1

        if stats["expired"]["total"]:
            logger.info(
                f"Expired {stats['expired']['total']} quests "
                f"({stats['expired']['individual']} individual, {stats['expired']['family']} family), "
                f"{stats['streaks_broken']} streaks broken"
            )
            await EventBus.publish("quests_expired", stats)

        return stats
