"""Authority connector: resolves the spaces a user may view."""

from __future__ import annotations

import logging

from confsync.connectors.base import BaseConnector
from confsync.errors import ConfsyncError, OperationInterrupted
from confsync.failures import failure_guard
from confsync.models import GLOBAL_DENY_TOKEN, AuthorizationRecord, AuthorizationResponse
from confsync.source.client import ConfluenceClient
from confsync.sync.seeds import iter_listing

LOGGER = logging.getLogger(__name__)

VIEW_PERMISSION = "view"
AUTHORIZATION = "authorization"


class AuthorityConnector(BaseConnector):
    """Maps a username to the keys of the spaces they can view.

    Nothing is cached: every lookup lists all spaces and checks the user's
    permissions in each one.
    """

    def _probe(self, client: ConfluenceClient) -> bool:
        client.list_spaces(0, 1)
        return True

    def lookup(self, username: str) -> AuthorizationRecord:
        client = self.session.acquire()
        spaces = set()
        with failure_guard(AUTHORIZATION):
            for space in iter_listing(client.list_spaces, self.page_size):
                if VIEW_PERMISSION in client.check_permission(space.key, username):
                    spaces.add(space.key)
        LOGGER.debug("User %s can view %d space(s)", username, len(spaces))
        return AuthorizationRecord(username=username, spaces=frozenset(spaces))

    def authorize(self, username: str) -> frozenset[str]:
        """Return the viewable space keys, or an empty set if the lookup fails."""
        try:
            return self.lookup(username).spaces
        except OperationInterrupted:
            raise
        except ConfsyncError as exc:
            LOGGER.warning("Authorization lookup for %s failed: %s", username, exc)
            return frozenset()

    def get_authorization_response(self, username: str) -> AuthorizationResponse:
        if not username:
            return AuthorizationResponse(AuthorizationResponse.USERNOTFOUND, (GLOBAL_DENY_TOKEN,))
        try:
            record = self.lookup(username)
        except OperationInterrupted:
            raise
        except ConfsyncError as exc:
            LOGGER.warning("Authority unreachable for %s: %s", username, exc)
            return AuthorizationResponse(AuthorizationResponse.UNREACHABLE, (GLOBAL_DENY_TOKEN,))
        return AuthorizationResponse(AuthorizationResponse.OK, tuple(sorted(record.spaces)))
