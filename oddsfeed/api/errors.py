"""
Exceptions raised by the REST client.

Exception hierarchy:
- OddsAPIError (base, carries the HTTP status when there is one)
  - InvalidAPIKeyError: 401
  - RateLimitExceededError: 429
  - NotFoundError: 404
  - RequestTimeoutError: request exceeded the client timeout
  - NetworkError: transport-level failure
"""

from __future__ import annotations

from typing import Optional


class OddsAPIError(Exception):
    """Base exception for all odds API errors."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class InvalidAPIKeyError(OddsAPIError):
    """Raised when the API key is invalid or missing."""

    def __init__(self, message: str = "Invalid API key") -> None:
        super().__init__(message, status=401)


class RateLimitExceededError(OddsAPIError):
    """Raised when the rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded - please wait before retrying",
        *,
        retry_after_s: Optional[float] = None,
    ) -> None:
        self.retry_after_s = retry_after_s
        super().__init__(message, status=429)


class NotFoundError(OddsAPIError):
    """Raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status=404)


class RequestTimeoutError(OddsAPIError):
    """Raised when a request times out."""

    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message)


class NetworkError(OddsAPIError):
    """Raised when the request fails below HTTP."""
