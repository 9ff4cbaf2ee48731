from __future__ import annotations


class NovaError(Exception):
    """Base class for errors raised by the snapshot service."""


class ExternalServiceError(NovaError):
    """A call to the account-aggregation provider failed."""

    def __init__(self, message: str, *, institution: str | None = None, code: str | None = None):
        super().__init__(message)
        self.institution = institution
        self.code = code


class NetworkError(ExternalServiceError):
    pass


class AuthError(ExternalServiceError):
    pass


class RateLimitError(ExternalServiceError):
    pass


class StorageError(NovaError):
    """Ledger, credential or ATH persistence failed."""


class ValidationError(NovaError):
    """Malformed operator input, rejected before any side effect."""


class RunInProgressError(NovaError):
    """Another snapshot run holds the lock."""
