"""Tests for the exception hierarchy and its messages."""

import pytest

from chorequest.exceptions import (
    AntiHoardingError,
    ChoreQuestException,
    ConcurrentModificationError,
    ConflictError,
    DatabaseError,
    InsufficientGoldError,
    InvalidDifficultyError,
    InvalidStateError,
    NotFoundError,
    QuestNotFoundError,
    ValidationError,
    WriteFailureError,
)
from chorequest.database.models import QuestStatus


class TestMessages:
    """Messages carry the data callers need."""

    def test_not_found_embeds_reason(self) -> None:
        """The storage message is embedded verbatim."""
        error = QuestNotFoundError("q-1", "no rows returned")

        assert str(error) == "Failed to fetch quest: no rows returned"
        assert isinstance(error, NotFoundError)
        assert error.details == {"entity": "quest", "id": "q-1", "reason": "no rows returned"}

    def test_invalid_state_embeds_status(self) -> None:
        """Enum statuses are rendered by value."""
        error = InvalidStateError("available for claiming", QuestStatus.APPROVED)

        assert str(error) == "Quest is not available for claiming (status: APPROVED)"
        assert error.status == "APPROVED"

    def test_concurrent_modification(self) -> None:
        """Both the expected and the found status are reported."""
        error = ConcurrentModificationError("q-1", QuestStatus.AVAILABLE, QuestStatus.CLAIMED)

        assert "expected status: AVAILABLE, found: CLAIMED" in str(error)
        assert isinstance(error, ConflictError)

    def test_anti_hoarding_includes_remedy(self) -> None:
        """The remedy is appended to the fixed message."""
        error = AntiHoardingError("c-1", "q-9", "Release or complete it before claiming another.")

        assert str(error) == (
            "Hero already has an active family quest. Release or complete it before claiming another."
        )
        assert error.details["active_quest_id"] == "q-9"

    def test_write_failure_keeps_original_message(self) -> None:
        """A failed compensation never hides the first error."""
        error = WriteFailureError("approve quest", RuntimeError("disk full"), RuntimeError("still full"))

        assert str(error) == "Failed to approve quest: disk full"
        assert error.details["rollback_error"] == "still full"

    def test_insufficient_gold_formats_numbers(self) -> None:
        """Amounts use thousands separators."""
        assert str(InsufficientGoldError("c-1", 12000, 950)) == "Insufficient gold: need 12,000, have 950"

    def test_invalid_difficulty_is_validation_error(self) -> None:
        """Difficulty errors can be caught as validation failures."""
        error = InvalidDifficultyError("LEGENDARY")

        assert isinstance(error, ValidationError)
        assert error.field == "difficulty"
        assert str(error) == "Unknown difficulty: LEGENDARY"


class TestSerialization:
    """to_dict for structured logging."""

    @pytest.mark.parametrize(
        "error",
        [
            ChoreQuestException("boom", {"k": "v"}),
            DatabaseError("update quest", RuntimeError("locked")),
            ValidationError("status", "bad"),
        ],
    )
    def test_to_dict(self, error: ChoreQuestException) -> None:
        """Every error serializes its type, message and details."""
        data = error.to_dict()

        assert data["error_type"] == type(error).__name__
        assert data["message"] == str(error)
        assert data["details"] == error.details
