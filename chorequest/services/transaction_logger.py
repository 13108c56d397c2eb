from typing import Dict, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from chorequest.database.models.character import Character
from chorequest.database.models.enums import TransactionType
from chorequest.database.models.transaction_log import TransactionLog
from chorequest.services.logger import get_logger
from chorequest.utils.time_utils import utcnow

logger = get_logger(__name__)


class TransactionLogger:
    """
    Ledger writer for every change to a character's wallet.

    Each gold/xp/gems/honor mutation is paired with one TransactionLog row
    added to the caller's session, so the wallet and its ledger commit or
    roll back together. AuditService replays these rows to verify balances.

    Transaction Types:
        - QUEST_REWARD (quest approval payout)
        - STORE_PURCHASE (reward redemption, negative gold)
        - REWARD_REFUND (denied redemption)
        - BONUS_AWARD (admin adjustments)

    Usage:
        >>> async with DatabaseService.get_transaction() as session:
        ...     await TransactionLogger.log_transaction(
        ...         session=session,
        ...         character=character,
        ...         transaction_type=TransactionType.QUEST_REWARD,
        ...         gold_change=72,
        ...         xp_change=150,
        ...         related_id=quest.id,
        ...         description="Quest approved: Dishes",
        ...     )
    """

    @staticmethod
    async def log_transaction(
        session: AsyncSession,
        character: Character,
        transaction_type: TransactionType,
        gold_change: int = 0,
        xp_change: int = 0,
        gems_change: int = 0,
        honor_change: int = 0,
        related_id: Optional[str] = None,
        description: str = "",
        details: Optional[Dict[str, Any]] = None
    ) -> TransactionLog:
        """
        Add a ledger entry to the session.

        Unlike informational logging, a ledger entry that cannot be written
        must fail the surrounding transaction, so errors propagate.

        Args:
            session: Database session (must be part of active transaction)
            character: Character whose wallet changed
            transaction_type: Kind of change
            gold_change / xp_change / gems_change / honor_change: Signed deltas
            related_id: Quest or redemption id
            description: Human-readable summary
            details: Structured data about the change

        Returns:
            The pending TransactionLog row
        """
        log_entry = TransactionLog(
            user_id=character.user_id,
            character_id=character.id,
            transaction_type=transaction_type,
            gold_change=gold_change,
            xp_change=xp_change,
            gems_change=gems_change,
            honor_change=honor_change,
            related_id=related_id,
            description=description,
            details=details or {},
            timestamp=utcnow()
        )

        session.add(log_entry)

        logger.info(
            f"TRANSACTION: character={character.id} type={getattr(transaction_type, 'value', transaction_type)} "
            f"gold={gold_change:+d} xp={xp_change:+d} related={related_id}"
        )

        return log_entry
