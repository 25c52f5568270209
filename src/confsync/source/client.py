"""HTTP client for the Confluence REST API (and the JSON-RPC permission call)."""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Mapping, Optional

import httpx

from confsync.config import ServerConfig
from confsync.errors import OperationInterrupted, ParseError, TransportError
from confsync.models import Attachment, ContentItem, ListingPage, Page, Space
from confsync.source.parsing import (
    parse_attachment,
    parse_content,
    parse_listing,
    parse_page,
    parse_permissions,
    parse_space,
)
from confsync.utils.urls import join_url

LOGGER = logging.getLogger(__name__)

CONTENT_PATH = "rest/api/content"
SPACE_PATH = "rest/api/space"
RPC_PATH = "rpc/json-rpc/confluenceservice-v2"
EXPAND_PARAMETERS = "body.view,metadata.labels,space,history,version"


class ConfluenceClient:
    """Blocking client for one Confluence instance.

    ``fetch_document`` reports a missing document as a :class:`Page` with no
    body; every other failure raises :class:`TransportError` (or its
    :class:`ParseError` subtype). When ``cancel_event`` is set, the next
    request boundary raises :class:`OperationInterrupted`.
    """

    def __init__(
        self,
        server: ServerConfig,
        *,
        timeout: float = 30.0,
        cancel_event: threading.Event | None = None,
    ) -> None:
        server.validate()
        self.server = server
        self.base_url = server.base_url()
        self._cancel_event = cancel_event

        LOGGER.debug("Confluence base url = '%s'", self.base_url)
        LOGGER.debug("Confluence username = '%s'", server.username)
        LOGGER.debug("Confluence password %s", "set" if server.password is not None else "not set")

        auth = (server.username, server.password) if server.uses_basic_auth else None
        self._http = httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json"},
            auth=auth,
            follow_redirects=True,
        )

    def close(self) -> None:
        self._http.close()

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise OperationInterrupted("Operation cancelled")

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        self._check_cancelled()
        LOGGER.debug("Hitting url %s %s", method, url)
        try:
            response = self._http.request(method, url, params=params, json=json)
        except httpx.TimeoutException as exc:
            self._check_cancelled()
            raise TransportError(f"Timed out requesting {url}: {exc}") from exc
        except httpx.HTTPError as exc:
            self._check_cancelled()
            raise TransportError(f"Confluence appears to be down: {exc}") from exc
        self._check_cancelled()

        if allow_not_found and response.status_code == 404:
            return None
        if response.status_code != 200:
            raise TransportError(
                f"Confluence error. {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"Error parsing JSON response data: {exc}") from exc

    def check_reachable(self) -> bool:
        """Return ``True`` if the content endpoint answers with HTTP 200."""
        try:
            self._request("GET", join_url(self.base_url, CONTENT_PATH), params={"limit": 1})
        except TransportError as exc:
            LOGGER.warning("[Checking connection] Confluence server appears to be down: %s", exc)
            raise
        return True

    def list_page(self, start: int, limit: int, space: Optional[str] = None) -> ListingPage[Page]:
        params: dict[str, Any] = {"limit": limit, "start": start}
        if space:
            params["spaceKey"] = space
        response = self._request("GET", join_url(self.base_url, CONTENT_PATH), params=params)
        listing = parse_listing(self._json(response), parse_page)
        if not listing.results:
            LOGGER.warning("No pages found in the Confluence response")
        return listing

    def list_attachments(self, page_id: str, start: int, limit: int) -> ListingPage[Attachment]:
        url = join_url(self.base_url, CONTENT_PATH, page_id, "child", "attachment")
        response = self._request("GET", url, params={"limit": limit, "start": start})
        return parse_listing(
            self._json(response),
            lambda item: parse_attachment(item, base_url=self.base_url),
        )

    def list_spaces(self, start: int, limit: int) -> ListingPage[Space]:
        response = self._request(
            "GET", join_url(self.base_url, SPACE_PATH), params={"limit": limit, "start": start}
        )
        return parse_listing(self._json(response), parse_space)

    def fetch_document(self, doc_id: str) -> ContentItem:
        url = join_url(self.base_url, CONTENT_PATH, doc_id)
        response = self._request(
            "GET", url, params={"expand": EXPAND_PARAMETERS}, allow_not_found=True
        )
        if response is None:
            LOGGER.debug("Document %s not found", doc_id)
            return Page(id=doc_id, body=None)
        return parse_content(self._json(response), base_url=self.base_url)

    def fetch_attachment_content(self, attachment: Attachment) -> bytes:
        if not attachment.download_url:
            raise TransportError(f"Attachment {attachment.id} has no download link")
        response = self._request("GET", attachment.full_download_url)
        return response.content

    def check_permission(self, space_key: str, username: str) -> List[str]:
        url = join_url(self.base_url, RPC_PATH, "getPermissionsForUser")
        LOGGER.debug("Getting permissions for user %s in space %s", username, space_key)
        response = self._request("POST", url, json=[space_key, username])
        return parse_permissions(self._json(response))
