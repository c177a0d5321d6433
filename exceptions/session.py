"""
Session-related exceptions.
"""

from .base import MarketplaceException


class SessionException(MarketplaceException):
    """Base exception for session errors."""
    pass


class NotAuthenticatedException(SessionException):
    """Raised when an operation needs an identity but the session is anonymous."""

    def __init__(self, operation: str):
        super().__init__(
            f"Operation '{operation}' requires a signed-in user",
            details={'operation': operation}
        )
        self.operation = operation
