from typing import Optional, Any, Dict


class ChoreQuestException(Exception):
    """
    Base exception for all ChoreQuest errors.

    Provides structured error information with details for logging and user display.
    All custom exceptions should inherit from this base class.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error

    Example:
        >>> raise ChoreQuestException("Something went wrong", {"context": "claim"})
    """

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(ChoreQuestException):
    """
    Raised when a required row cannot be found.

    Args:
        entity: Kind of row that was looked up (quest, character, reward)
        entity_id: Identifier used for the lookup
        reason: Underlying storage message, embedded verbatim
    """

    def __init__(self, entity: str, entity_id: Optional[str] = None, reason: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        self.reason = reason or f"{entity.capitalize()} not found"
        message = f"Failed to fetch {entity}: {self.reason}"
        super().__init__(message, {"entity": entity, "id": entity_id, "reason": self.reason})


class QuestNotFoundError(NotFoundError):
    """Raised when a quest instance id does not match any row."""

    def __init__(self, quest_id: str, reason: Optional[str] = None):
        self.quest_id = quest_id
        super().__init__("quest", quest_id, reason)


class CharacterNotFoundError(NotFoundError):
    """Raised when a character cannot be found by id or owning user id."""

    def __init__(self, character_id: str, reason: Optional[str] = None):
        self.character_id = character_id
        super().__init__("character", character_id, reason)


class RewardNotFoundError(NotFoundError):
    """Raised when a reward or redemption is missing or outside the caller's family."""

    def __init__(self, reward_id: str, reason: Optional[str] = None):
        self.reward_id = reward_id
        super().__init__("reward", reward_id, reason)


class InvalidStateError(ChoreQuestException):
    """
    Raised when a quest is not in a status that allows the requested transition.

    The actual status is always embedded in the message.

    Args:
        action: Human-readable description of the refused action
        status: Status the quest was found in

    Example:
        >>> raise InvalidStateError("available for claiming", "APPROVED")
        InvalidStateError: Quest is not available for claiming (status: APPROVED)
    """

    def __init__(self, action: str, status: Any):
        self.action = action
        self.status = getattr(status, "value", status)
        message = f"Quest is not {action} (status: {self.status})"
        super().__init__(message, {"action": action, "status": self.status})


class InvalidOperationError(ChoreQuestException):
    """
    Raised when an operation does not apply to the quest it was called on.

    Args:
        message: Fixed description of the rule that was broken
    """

    def __init__(self, message: str):
        super().__init__(message, {"reason": message})


class ConflictError(ChoreQuestException):
    """Raised when a request conflicts with the current state of another row."""


class AntiHoardingError(ConflictError):
    """
    Raised when a hero already holds an active FAMILY quest.

    Args:
        character_id: Hero attempting to take another quest
        active_quest_id: Quest currently held by the hero
        remedy: What the caller must do before retrying
    """

    def __init__(self, character_id: str, active_quest_id: str, remedy: str):
        self.character_id = character_id
        self.active_quest_id = active_quest_id
        message = f"Hero already has an active family quest. {remedy}"
        super().__init__(message, {"character_id": character_id, "active_quest_id": active_quest_id})


class ConcurrentModificationError(ConflictError):
    """
    Raised when a conditional write finds the row already changed by someone else.

    Args:
        quest_id: Quest whose status moved between read and write
        expected_status: Status the write was conditioned on
        actual_status: Status found after the write matched no rows
    """

    def __init__(self, quest_id: str, expected_status: Any, actual_status: Any):
        self.quest_id = quest_id
        self.expected_status = getattr(expected_status, "value", expected_status)
        self.actual_status = getattr(actual_status, "value", actual_status)
        message = (
            f"Quest {quest_id} was modified concurrently "
            f"(expected status: {self.expected_status}, found: {self.actual_status})"
        )
        super().__init__(message, {
            "quest_id": quest_id,
            "expected_status": self.expected_status,
            "actual_status": self.actual_status,
        })


class ForbiddenError(ChoreQuestException):
    """
    Raised when the acting hero is not allowed to touch the quest.

    Args:
        message: Fixed description of who may perform the action
    """

    def __init__(self, message: str):
        super().__init__(message, {"reason": message})


class WriteFailureError(ChoreQuestException):
    """
    Raised when a write fails after a related write already succeeded.

    The message always carries the original write's error. A failed
    compensating write is kept on ``rollback_error`` for logging.

    Args:
        operation: Write that failed ("update character", "approve quest")
        original_error: The underlying exception
        rollback_error: Exception raised by the compensating write, if any
    """

    def __init__(
        self,
        operation: str,
        original_error: Exception,
        rollback_error: Optional[Exception] = None
    ):
        self.operation = operation
        self.original_error = original_error
        self.rollback_error = rollback_error
        message = f"Failed to {operation}: {original_error}"
        details = {"operation": operation, "error": str(original_error)}
        if rollback_error is not None:
            details["rollback_error"] = str(rollback_error)
        super().__init__(message, details)


class InsufficientGoldError(ChoreQuestException):
    """
    Raised when a character cannot afford a purchase.

    Args:
        character_id: Character attempting the purchase
        required: Gold needed
        current: Gold the character has
    """

    def __init__(self, character_id: str, required: int, current: int):
        self.character_id = character_id
        self.required = required
        self.current = current
        message = f"Insufficient gold: need {required:,}, have {current:,}"
        super().__init__(message, {"character_id": character_id, "required": required, "current": current})


class ValidationError(ChoreQuestException):
    """
    Raised when input fails validation.

    Args:
        field: Name of the field that failed validation
        message: Description of why validation failed
    """

    def __init__(self, field: str, message: str):
        self.field = field
        error_message = f"Validation error for {field}: {message}"
        super().__init__(error_message, {"field": field, "message": message})


class InvalidDifficultyError(ValidationError):
    """
    Raised for a quest difficulty outside EASY/MEDIUM/HARD.

    Never defaulted: a silent multiplier would corrupt payouts.
    """

    def __init__(self, difficulty: Any):
        self.difficulty = difficulty
        ChoreQuestException.__init__(
            self,
            f"Unknown difficulty: {getattr(difficulty, 'value', difficulty)}",
            {"field": "difficulty", "value": str(difficulty)}
        )
        self.field = "difficulty"


class ConfigurationError(ChoreQuestException):
    """
    Raised when configuration is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    def __init__(self, config_key: str, message: str):
        self.config_key = config_key
        error_message = f"Configuration error for {config_key}: {message}"
        super().__init__(error_message, {"config_key": config_key, "message": message})


class DatabaseError(ChoreQuestException):
    """
    Raised when database operations fail.

    Args:
        operation: Description of the operation that failed
        original_error: The underlying exception
    """

    def __init__(self, operation: str, original_error: Exception):
        self.operation = operation
        self.original_error = original_error
        message = f"Database error during {operation}: {str(original_error)}"
        super().__init__(message, {"operation": operation, "error": str(original_error)})
