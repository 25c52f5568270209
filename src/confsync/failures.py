"""Classification of remote failures into retry, fatal and interrupt outcomes."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator

import httpx

from confsync.errors import (
    ConfigurationError,
    ConfsyncError,
    OperationInterrupted,
    ServiceInterruption,
    TransportError,
)

LOGGER = logging.getLogger(__name__)

SEEDING = "seeding"
PROCESSING = "processing"

INTERRUPTION_RETRY_TIME = timedelta(minutes=5)
IO_FAILURE_WINDOW = timedelta(hours=3)
IO_RETRY_LIMIT = 3

# Statuses by which the server itself says "try again later".
TEMPORARY_STATUS_CODES = frozenset({429, 503})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def server_down(exc: BaseException, context: str, *, now: datetime | None = None) -> ServiceInterruption:
    """The server looks down: retry indefinitely, keeping the job fresh."""
    now = now or _utcnow()
    return ServiceInterruption(
        f"Server appears down during {context}: {exc}",
        retry_after=now + INTERRUPTION_RETRY_TIME,
        fail_after=None,
        retry_limit=-1,
        fresh=True,
    )


def io_failure(exc: BaseException, *, now: datetime | None = None) -> ServiceInterruption:
    """A single request failed: retry a few times within a bounded window."""
    now = now or _utcnow()
    return ServiceInterruption(
        f"IO exception: {exc}",
        retry_after=now + INTERRUPTION_RETRY_TIME,
        fail_after=now + IO_FAILURE_WINDOW,
        retry_limit=IO_RETRY_LIMIT,
        fresh=False,
    )


def classify(exc: BaseException, context: str, *, now: datetime | None = None) -> ConfsyncError | None:
    """Map ``exc`` to the error the caller should raise.

    Interruptions, configuration errors and already-classified interruptions
    come back unchanged. Remote failures become a :class:`ServiceInterruption`.
    Anything else returns ``None`` and must be re-raised as is.
    """
    if isinstance(exc, (OperationInterrupted, ConfigurationError, ServiceInterruption)):
        return exc
    # InterruptedError is an OSError; it must never become a retry.
    if isinstance(exc, InterruptedError):
        return OperationInterrupted(f"Interrupted: {exc}")
    if isinstance(exc, (TransportError, httpx.HTTPError, OSError)):
        if context == SEEDING:
            return server_down(exc, context, now=now)
        return io_failure(exc, now=now)
    return None


@contextmanager
def failure_guard(context: str) -> Iterator[None]:
    """Classify any exception raised in the block before it propagates."""
    try:
        yield
    except Exception as exc:
        classified = classify(exc, context)
        if classified is None or classified is exc:
            raise
        if isinstance(classified, ServiceInterruption):
            LOGGER.warning("%s", classified, exc_info=exc)
        raise classified from exc
