"""
Root of the client core's exception hierarchy.

Nothing in the client core retries on its own. The `retryable` flag only
tells presentation code whether offering a "try again" action makes sense.
"""


class MarketplaceException(Exception):
    """
    Base exception for all marketplace client errors.

    Attributes:
        message: Human-readable error message
        details: Context for logs (ids, paths, quantities)
        retryable: Whether repeating the same action later can succeed
    """

    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        context = ', '.join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{type(self).__name__}({self.message!r}{', ' + context if context else ''})"
