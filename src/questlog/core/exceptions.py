"""Exception hierarchy for questlog.

Every error raised by the application derives from QuestlogError, so the
request layer can catch one type at its boundary and still read the
domain-specific context carried in ``details``.

Example:
    >>> from questlog.core.exceptions import NotFoundError
    >>> raise NotFoundError("Character not found", resource="character", identifier="abc")
"""

from __future__ import annotations

from typing import Any


class QuestlogError(Exception):
    """Base exception for all questlog errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Input & Lookup Exceptions
# =============================================================================


class InvalidInputError(QuestlogError):
    """Raised when a caller passes a value that violates an operation's contract.

    Examples are a non-positive experience award or an unknown experience
    source. Raised before any persistence happens.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid input error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the offending field or argument.
            invalid_value: The value that was rejected.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class NotFoundError(QuestlogError):
    """Raised when a referenced record does not exist."""

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        identifier: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not-found error with lookup context.

        Args:
            message: Human-readable error description.
            resource: Kind of record that was looked up (e.g. 'character').
            identifier: The id or key that was not found.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if resource:
            combined_details["resource"] = resource
        if identifier is not None:
            combined_details["identifier"] = identifier
        super().__init__(message, details=combined_details)


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageError(QuestlogError):
    """Raised when the storage backend is unreachable or a write fails.

    The engine never retries on its own; ``retryable`` tells the caller
    whether repeating the whole operation is reasonable.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        retryable: bool = True,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize storage error with operation context.

        Args:
            message: Human-readable error description.
            operation: Storage operation that failed.
            retryable: Whether the caller may retry the operation.
            details: Optional dictionary containing additional error context.
        """
        self.retryable = retryable
        combined_details = details or {}
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


# =============================================================================
# Game Engine Exceptions
# =============================================================================


class GameEngineError(QuestlogError):
    """Base exception for rules-engine errors."""


class DiceRollError(GameEngineError):
    """Raised when a dice roll cannot be performed."""

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class NarrativeError(GameEngineError):
    """Raised when the narrative generator fails to produce a response."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(QuestlogError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


__all__ = [
    "QuestlogError",
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
    "GameEngineError",
    "DiceRollError",
    "NarrativeError",
    "ConfigurationError",
]
