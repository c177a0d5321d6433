"""
Remote commerce API exceptions.

None of these are retried by the client core. Transport failures and timeouts
are surfaced so the user can retry; authorization failures are surfaced so the
UI can trigger re-authentication.
"""

from .base import MarketplaceException


class ApiException(MarketplaceException):
    """Base exception for remote API errors."""
    pass


class NetworkException(ApiException):
    """Raised when the request never produced an HTTP response (connection error, timeout)."""

    retryable = True

    def __init__(self, method: str, path: str, reason: str):
        super().__init__(
            f"{method} {path} failed: {reason}",
            details={'method': method, 'path': path, 'reason': reason}
        )
        self.method = method
        self.path = path
        self.reason = reason


class AuthorizationException(ApiException):
    """Raised when the bearer token is missing, expired or rejected (HTTP 401/403)."""

    def __init__(self, path: str, status: int | None = None):
        super().__init__(
            f"Not authorized for {path}" + (f" (HTTP {status})" if status else ""),
            details={'path': path, 'status': status}
        )
        self.path = path
        self.status = status


class RemoteServiceException(ApiException):
    """Raised when the commerce service answers with a non-success status."""

    def __init__(self, method: str, path: str, status: int, message: str | None = None):
        text = f"{method} {path} returned HTTP {status}"
        if message:
            text += f": {message}"
        super().__init__(
            text,
            details={'method': method, 'path': path, 'status': status}
        )
        self.method = method
        self.path = path
        self.status = status
        self.server_message = message

    @property
    def retryable(self) -> bool:
        return self.status >= 500


class InvalidResponseException(ApiException):
    """Raised when a successful response cannot be decoded or does not match the expected payload."""

    def __init__(self, method: str, path: str, reason: str):
        super().__init__(
            f"{method} {path} returned an unreadable response: {reason}",
            details={'method': method, 'path': path, 'reason': reason}
        )
        self.method = method
        self.path = path
        self.reason = reason
