"""Lazily created, idle-released client handle."""

from __future__ import annotations

import logging
import time
from typing import Callable, Generic, Optional, Protocol, TypeVar

from confsync.config import DEFAULT_IDLE_TIMEOUT

LOGGER = logging.getLogger(__name__)


class Closeable(Protocol):
    def close(self) -> None: ...


C = TypeVar("C", bound=Closeable)


class ClientSession(Generic[C]):
    """Owns at most one client plus the time it was last used.

    Nothing runs in the background: the owner calls :meth:`poll` periodically
    and the client is released once it has been idle for ``idle_timeout``
    seconds. The next :meth:`acquire` builds a fresh one.
    """

    def __init__(
        self,
        factory: Callable[[], C],
        *,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._client: Optional[C] = None
        self._last_activity: Optional[float] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def acquire(self) -> C:
        """Return the client, creating it on first use."""
        if self._client is None:
            self._client = self._factory()
            LOGGER.debug("Created new client %r", self._client)
        self._last_activity = self._clock()
        return self._client

    def poll(self) -> bool:
        """Release the client if it has been idle too long.

        Returns ``True`` when a client was released.
        """
        if self._client is None or self._last_activity is None:
            return False
        if self._clock() - self._last_activity < self.idle_timeout:
            return False
        LOGGER.debug("Releasing client idle for more than %.0fs", self.idle_timeout)
        self.close()
        return True

    def close(self) -> None:
        client, self._client = self._client, None
        self._last_activity = None
        if client is not None:
            client.close()
