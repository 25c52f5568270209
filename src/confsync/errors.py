"""Exception hierarchy shared by the connectors."""

from __future__ import annotations

from datetime import datetime


class ConfsyncError(Exception):
    """Base class for all confsync errors."""


class ConfigurationError(ConfsyncError):
    """Required connection parameters are missing or invalid.

    Raised when the client is first built. Never retried.
    """


class TransportError(ConfsyncError):
    """The remote could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(TransportError):
    """The remote answered with a body that could not be decoded."""


class OperationInterrupted(ConfsyncError):
    """The running operation was cancelled and must unwind now."""


class ServiceInterruption(ConfsyncError):
    """Transient remote failure: retry the work no earlier than ``retry_after``.

    ``retry_limit`` of ``-1`` means unlimited retries. ``fail_after`` is the
    point past which the host should stop retrying (``None`` for no deadline).
    ``fresh`` tells the host the job does not need a full restart while it waits.
    """

    def __init__(
        self,
        message: str,
        *,
        retry_after: datetime,
        fail_after: datetime | None = None,
        retry_limit: int = -1,
        fresh: bool = False,
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.fail_after = fail_after
        self.retry_limit = retry_limit
        self.fresh = fresh
