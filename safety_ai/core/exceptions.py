"""Custom exception hierarchy for the persistence layer."""

from typing import Optional


class SafetyAIError(Exception):
    """Base exception for persistence errors."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error


class ValidationError(SafetyAIError):
    """Raised when an entity is malformed before it is staged."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(SafetyAIError):
    """Raised when operating on an entity not present in the current session."""
    pass


class InvalidOperationError(SafetyAIError):
    """Raised on transaction-state misuse (double begin, commit without begin, use after dispose)."""
    pass


class StorageError(SafetyAIError):
    """Raised when the underlying database rejects an operation."""
    pass


class InitializationError(SafetyAIError):
    """Raised when schema creation or migration fails."""
    pass
