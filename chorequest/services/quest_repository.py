from typing import Dict, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, update, delete

from chorequest.database.models.character import Character
from chorequest.database.models.family import Family
from chorequest.database.models.quest_instance import QuestInstance
from chorequest.database.models.quest_template import QuestTemplate
from chorequest.exceptions import (
    QuestNotFoundError,
    CharacterNotFoundError,
    ConflictError,
    ConcurrentModificationError,
    DatabaseError,
)
from chorequest.services.logger import get_logger
from chorequest.utils.time_utils import utcnow

logger = get_logger(__name__)


class QuestRepository:
    """
    Narrow read/update contract over the quest, character, template and family tables.

    Writes are partial UPDATE statements so only the listed fields change.
    Quest status transitions can be conditioned on the status that was read
    (compare-and-swap): a lost race raises ConcurrentModificationError instead
    of silently overwriting another request's transition.

    Required rows (quest, character) raise NotFound errors; best-effort rows
    (template, family) return None.

    Usage:
        >>> quest = await QuestRepository.get_quest(session, quest_id)
        >>> quest = await QuestRepository.update_quest(
        ...     session, quest.id,
        ...     {"status": QuestStatus.CLAIMED},
        ...     expected_status=QuestStatus.AVAILABLE
        ... )
        >>> await QuestRepository.update_character(
        ...     session, character.id, {"gold": Character.gold + 50}
        ... )
    """

    @staticmethod
    async def get_quest(session: AsyncSession, quest_id: str) -> QuestInstance:
        """
        Fetch a quest instance with fresh column values.

        Raises:
            QuestNotFoundError: If no quest has this id
            DatabaseError: If the read fails
        """
        try:
            quest = await session.get(QuestInstance, quest_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise DatabaseError("fetch quest", e) from e

        if quest is None:
            raise QuestNotFoundError(quest_id)
        return quest

    @staticmethod
    async def update_quest(
        session: AsyncSession,
        quest_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[Any] = None
    ) -> QuestInstance:
        """
        Partially update a quest, optionally only if its status is unchanged.

        Args:
            session: Database session (transaction managed by caller)
            quest_id: Quest to update
            fields: Column -> new value
            expected_status: When given, the UPDATE only matches a row still
                in this status

        Returns:
            The updated QuestInstance

        Raises:
            ConcurrentModificationError: expected_status no longer matches
            QuestNotFoundError: The quest disappeared
            DatabaseError: The write fails
        """
        values = dict(fields)
        values["updated_at"] = utcnow()

        stmt = update(QuestInstance).where(QuestInstance.id == quest_id)
        if expected_status is not None:
            stmt = stmt.where(QuestInstance.status == expected_status)

        try:
            result = await session.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise DatabaseError("update quest", e) from e

        if result.rowcount == 0:
            current = await QuestRepository.get_quest(session, quest_id)
            logger.warning(
                f"Conditional update lost race on quest {quest_id}: "
                f"expected {expected_status}, found {current.status}"
            )
            raise ConcurrentModificationError(quest_id, expected_status, current.status)

        return await QuestRepository.get_quest(session, quest_id)

    @staticmethod
    async def delete_quest(
        session: AsyncSession,
        quest_id: str,
        expected_status: Optional[Any] = None
    ) -> None:
        """
        Delete a quest row, optionally only if its status is unchanged.

        Raises:
            ConcurrentModificationError: expected_status no longer matches
            QuestNotFoundError: The quest does not exist
        """
        stmt = delete(QuestInstance).where(QuestInstance.id == quest_id)
        if expected_status is not None:
            stmt = stmt.where(QuestInstance.status == expected_status)

        try:
            result = await session.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            raise DatabaseError("delete quest", e) from e

        if result.rowcount == 0:
            current = await QuestRepository.get_quest(session, quest_id)
            raise ConcurrentModificationError(quest_id, expected_status, current.status)

        stale = await session.get(QuestInstance, quest_id)
        if stale is not None:
            session.expunge(stale)

    @staticmethod
    async def clear_active_quest_pointers(session: AsyncSession, quest_id: str) -> int:
        """
        Clear active_family_quest_id on every character pointing at a quest.

        Returns:
            Number of characters updated
        """
        try:
            result = await session.execute(
                update(Character)
                .where(Character.active_family_quest_id == quest_id)
                .values(active_family_quest_id=None, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise DatabaseError("clear active quest", e) from e

        return result.rowcount or 0

    @staticmethod
    async def get_character(session: AsyncSession, character_id: str) -> Character:
        """
        Fetch a character by id.

        Raises:
            CharacterNotFoundError: If no character has this id
        """
        try:
            character = await session.get(Character, character_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise DatabaseError("fetch character", e) from e

        if character is None:
            raise CharacterNotFoundError(character_id)
        return character

    @staticmethod
    async def get_character_by_user_id(session: AsyncSession, user_id: str) -> Character:
        """
        Fetch the character owned by a user.

        Raises:
            CharacterNotFoundError: If the user has no character
        """
        try:
            result = await session.execute(
                select(Character)
                .where(Character.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            character = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseError("fetch character", e) from e

        if character is None:
            raise CharacterNotFoundError(user_id, f"No character for user {user_id}")
        return character

    @staticmethod
    async def update_character(
        session: AsyncSession,
        character_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None
    ) -> Character:
        """
        Partially update a character.

        Values may be SQL expressions (Character.gold + 50) so wallet
        increments are applied atomically by the database.

        Args:
            session: Database session (transaction managed by caller)
            character_id: Character to update
            fields: Column -> new value or SQL expression
            expected: Column -> value the row must still hold for the
                update to apply (e.g. {"active_family_quest_id": None})

        Raises:
            CharacterNotFoundError: If no character has this id
            ConflictError: If an expected value no longer matches
            DatabaseError: If the write fails
        """
        values = dict(fields)
        values["updated_at"] = utcnow()

        stmt = update(Character).where(Character.id == character_id)
        for column, value in (expected or {}).items():
            attribute = getattr(Character, column)
            stmt = stmt.where(attribute.is_(None) if value is None else attribute == value)

        try:
            result = await session.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise DatabaseError("update character", e) from e

        if result.rowcount == 0:
            await QuestRepository.get_character(session, character_id)
            raise ConflictError(
                f"Character {character_id} was modified concurrently",
                {"character_id": character_id, "expected": expected}
            )

        return await QuestRepository.get_character(session, character_id)

    @staticmethod
    async def get_template(session: AsyncSession, template_id: Optional[str]) -> Optional[QuestTemplate]:
        """Best-effort template read. Absence and read errors both return None."""
        if not template_id:
            return None
        try:
            return await session.get(QuestTemplate, template_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to fetch template {template_id}: {e}")
            return None

    @staticmethod
    async def get_family(session: AsyncSession, family_id: Optional[str]) -> Optional[Family]:
        """Best-effort family read, used for timezone-aware streak days."""
        if not family_id:
            return None
        try:
            return await session.get(Family, family_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to fetch family {family_id}: {e}")
            return None
