"""Exception hierarchy for the document store adapters."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for all document store errors."""


class AuthenticationError(StoreError):
    """The store rejected the credentials or the token expired."""


class StoreConnectionError(StoreError):
    """Store is unreachable (network error, DNS, timeout)."""


class StoreResponseError(StoreError):
    """Store returned an unexpected error response.

    Attributes:
        status_code: HTTP status code, if available.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(StoreResponseError):
    """Store returned 429 Too Many Requests.

    Attributes:
        retry_after: Seconds to wait before retrying, if provided by the server.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        status_code: int = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class BatchCommitError(StoreError):
    """An atomic batch was rejected; none of its writes were applied."""
