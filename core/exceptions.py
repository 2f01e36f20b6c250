"""
Custom exceptions for the receipt parser.
"""
from typing import Any, Dict, Optional


class ReceiptParserException(Exception):
    """Base exception for all receipt parser errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ReceiptParserException):
    """Raised when configuration is invalid."""
    pass


class MissingCredentialError(ReceiptParserException):
    """Raised when an extraction is attempted without an API key."""

    def __init__(self, message: str = "API key is required", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ExtractionError(ReceiptParserException):
    """Raised when the vision model call fails or returns unusable data."""
    pass


class IndexOutOfRangeError(ReceiptParserException, IndexError):
    """Raised when a receipt position does not exist in the store."""
    pass


class PersistenceError(ReceiptParserException):
    """Raised when durable storage cannot be read or written."""
    pass


class DataNotFoundError(ReceiptParserException):
    """Raised when a queue entry is not found."""
    pass


class InvalidTransitionError(ReceiptParserException):
    """Raised when a queue entry is moved to a status it cannot reach."""
    pass


class ExportError(ReceiptParserException):
    """Raised when workbook export fails."""
    pass
