"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class PersistenceBatchError(DatabaseError):
    """Raised when one batch of extracted items cannot be inserted."""

    def __init__(self, message: str, batch_index: int, original_error: Exception = None):
        super().__init__(message, original_error)
        self.batch_index = batch_index


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class SheetSourceError(APIClientError):
    """Raised when spreadsheet content cannot be fetched from its source."""
    pass


class JobNotFoundError(AppError):
    """Raised when an extraction job is not found."""
    pass


class JobStateError(AppError):
    """Raised when a job is not in a state that allows the requested transition."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status
