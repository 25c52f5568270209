"""Connection handling shared by the repository and authority connectors."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from confsync.config import DEFAULT_IDLE_TIMEOUT, DEFAULT_PAGE_SIZE, ServerConfig
from confsync.errors import OperationInterrupted, ServiceInterruption, TransportError
from confsync.failures import TEMPORARY_STATUS_CODES
from confsync.source.client import ConfluenceClient
from confsync.source.session import ClientSession

LOGGER = logging.getLogger(__name__)


class BaseConnector:
    def __init__(
        self,
        server: ServerConfig,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        request_timeout: float = 30.0,
        cancel_event: Optional[threading.Event] = None,
        client_factory: Optional[Callable[[], ConfluenceClient]] = None,
    ) -> None:
        self.server = server
        self.page_size = page_size
        self.request_timeout = request_timeout
        self.cancel_event = cancel_event or threading.Event()
        self.session: ClientSession[ConfluenceClient] = ClientSession(
            client_factory or self._build_client, idle_timeout=idle_timeout
        )

    def _build_client(self) -> ConfluenceClient:
        return ConfluenceClient(
            self.server, timeout=self.request_timeout, cancel_event=self.cancel_event
        )

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    def poll(self) -> bool:
        """Release the client if it has been idle; see :meth:`ClientSession.poll`."""
        return self.session.poll()

    def disconnect(self) -> None:
        self.session.close()

    def cancel(self) -> None:
        """Ask the running operation to stop at the next request boundary."""
        self.cancel_event.set()

    def _probe(self, client: ConfluenceClient) -> bool:
        raise NotImplementedError

    def check(self) -> str:
        """Report connectivity as a human readable status. Never raises for
        remote or configuration failures."""
        try:
            client = self.session.acquire()
            if self._probe(client):
                return "Connection working"
            return "Connection failed: Confluence instance could not be reached"
        except OperationInterrupted:
            raise
        except ServiceInterruption as exc:
            return f"Connection temporarily failed: {exc}"
        except TransportError as exc:
            LOGGER.debug("Connection check failed", exc_info=exc)
            if exc.status_code in TEMPORARY_STATUS_CODES:
                return f"Connection temporarily failed: {exc}"
            return f"Connection failed: {exc}"
        except Exception as exc:
            LOGGER.debug("Connection check failed", exc_info=exc)
            return f"Connection failed: {exc}"
