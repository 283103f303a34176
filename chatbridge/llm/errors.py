"""Backend failure types."""

from __future__ import annotations


class BackendError(Exception):
    """A failed call to the generative backend.

    ``retryable`` is True for transient exhaustion (rate limit, quota,
    overload, connection trouble) where another credential may succeed.
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool,
        status_code: int | None = None,
        credential: str = "",
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code
        self.credential = credential


class AllCredentialsExhausted(Exception):
    """Every credential in the rotation failed with a retryable error."""

    def __init__(self, last_error: BackendError | None, attempts: int) -> None:
        super().__init__(f"All {attempts} credential attempt(s) failed: {last_error}")
        self.last_error = last_error
        self.attempts = attempts
