"""
Error taxonomy for the gradebook.

Every failure the core surfaces is one of these. Grading itself never
raises: an exam without scorable questions is reported as data on the
ScoreResult, not as an exception.
"""


class GradebookError(Exception):
    """Base class for all gradebook errors."""


class NotFoundError(GradebookError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class ConflictError(GradebookError):
    """Raised when an operation would break a uniqueness or reference constraint."""


class InvalidMarkError(GradebookError):
    """Raised when a mark is outside the accepted alphabet."""

    def __init__(self, mark: object, position: int | None = None):
        self.mark = mark
        self.position = position
        message = f"Invalid mark: {mark!r}"
        if position is not None:
            message = f"Question {position + 1}: {message}"
        super().__init__(message)


class RangeError(GradebookError):
    """Raised when a question position or count falls outside the allowed range."""

    def __init__(self, message: str, value: int):
        self.value = value
        super().__init__(message)


class StorageError(GradebookError):
    """Raised by storage backends when reading or writing records fails."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)
