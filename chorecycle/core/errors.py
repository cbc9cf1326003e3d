"""Engine exceptions and error classification utilities."""

from enum import Enum

from pydantic import BaseModel


class ChoreEngineError(Exception):
    """Base class for all errors raised by the instance engine."""


class InvalidRecurrenceError(ChoreEngineError, ValueError):
    """Recurrence rule is malformed (bad interval, end before start, unknown type)."""


class DefinitionValidationError(ChoreEngineError, ValueError):
    """Task definition fields are invalid."""


class DatabaseError(ChoreEngineError):
    """Storage collaborator failed."""


class DuplicateInstanceError(DatabaseError):
    """An instance with the same (definition_id, due_date) already exists."""


class RecordNotFoundError(ChoreEngineError, KeyError):
    """Requested record does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep messages readable
        return str(self.args[0]) if self.args else ""


class DefinitionNotFoundError(RecordNotFoundError):
    """Task definition does not exist or has been retired."""


class InstanceNotFoundError(RecordNotFoundError):
    """Task instance does not exist."""


class InvalidTransitionError(ChoreEngineError, ValueError):
    """Requested status change is not an edge of the lifecycle graph."""


class TransitionNotPermittedError(ChoreEngineError, PermissionError):
    """Actor is not allowed to perform the requested transition."""


class ErrorCategory(Enum):
    """Categories of errors surfaced by the engine."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    PERMISSION_DENIED = "permission_denied"
    STORAGE_FAILURE = "storage_failure"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Validation errors
    ERR_INVALID_RECURRENCE = "ERR_INVALID_RECURRENCE"
    ERR_INVALID_DEFINITION = "ERR_INVALID_DEFINITION"

    # Lookup errors
    ERR_DEFINITION_NOT_FOUND = "ERR_DEFINITION_NOT_FOUND"
    ERR_INSTANCE_NOT_FOUND = "ERR_INSTANCE_NOT_FOUND"

    # Lifecycle errors
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"

    # Collaborator errors
    ERR_STORAGE_FAILURE = "ERR_STORAGE_FAILURE"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response for the HTTP layer."""

    code: str
    category: ErrorCategory
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an engine error and return a structured response with recovery suggestions.

    Validation failures map to 4xx responses, collaborator failures to 5xx.

    Args:
        exception: The exception raised by an engine operation

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP-equivalent status
    """
    if isinstance(exception, InvalidRecurrenceError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_RECURRENCE,
            category=ErrorCategory.VALIDATION,
            message=f"Invalid recurrence rule: {exception}",
            suggestion="Use once, daily, weekly, monthly or interval_days with an interval of at least 1.",
            severity=ErrorSeverity.LOW,
            status_code=400,
        )

    if isinstance(exception, DefinitionValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_DEFINITION,
            category=ErrorCategory.VALIDATION,
            message=f"Invalid chore definition: {exception}",
            suggestion="Check the title and points and try again.",
            severity=ErrorSeverity.LOW,
            status_code=400,
        )

    if isinstance(exception, DefinitionNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_DEFINITION_NOT_FOUND,
            category=ErrorCategory.NOT_FOUND,
            message="I couldn't find that chore.",
            suggestion="It may have been retired. Refresh the chore list.",
            severity=ErrorSeverity.LOW,
            status_code=404,
        )

    if isinstance(exception, InstanceNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_INSTANCE_NOT_FOUND,
            category=ErrorCategory.NOT_FOUND,
            message="I couldn't find that chore instance.",
            suggestion="It may have been regenerated. Refresh the schedule.",
            severity=ErrorSeverity.LOW,
            status_code=404,
        )

    if isinstance(exception, TransitionNotPermittedError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            category=ErrorCategory.PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Ask a household admin if you think this is an error.",
            severity=ErrorSeverity.MEDIUM,
            status_code=403,
        )

    if isinstance(exception, InvalidTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            category=ErrorCategory.INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the current state.",
            suggestion="Refresh the chore to see its current status and try again.",
            severity=ErrorSeverity.LOW,
            status_code=409,
        )

    if isinstance(exception, DatabaseError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE_FAILURE,
            category=ErrorCategory.STORAGE_FAILURE,
            message="The chore store is unavailable.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
            status_code=503,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        category=ErrorCategory.UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
        status_code=500,
    )
