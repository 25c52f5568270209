"""Seed enumeration over paginated Confluence listings."""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional, Protocol, TypeVar

from confsync.config import DEFAULT_PAGE_SIZE
from confsync.errors import ParseError
from confsync.models import Attachment, ListingPage, Page

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ListingSource(Protocol):
    def list_page(self, start: int, limit: int, space: Optional[str] = None) -> ListingPage[Page]: ...

    def list_attachments(self, page_id: str, start: int, limit: int) -> ListingPage[Attachment]: ...


def iter_listing(
    fetch_page: Callable[[int, int], ListingPage[T]],
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Iterator[T]:
    """Walk a paginated listing front to back, starting at offset 0.

    The results of the page flagged last are still yielded before stopping.
    """
    start = 0
    while True:
        LOGGER.debug("Fetching listing from %d with size %d", start, page_size)
        page = fetch_page(start, page_size)
        yield from page.results
        count = len(page.results)
        LOGGER.debug("Fetched %d entries", count)
        if page.is_last:
            return
        if count == 0:
            raise ParseError(f"Listing at offset {start} is empty but reports more pages")
        start += count


def enumerate_seeds(
    source: ListingSource,
    space: Optional[str] = None,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    include_attachments: bool = False,
) -> Iterator[str]:
    """Yield the id of every page (and optionally attachment) in scope.

    Each call re-lists everything from the first page; no offset is carried
    over from a previous crawl cycle.
    """
    pages = iter_listing(lambda start, limit: source.list_page(start, limit, space), page_size)
    for page in pages:
        yield page.id
        if include_attachments:
            attachments = iter_listing(
                lambda start, limit, page_id=page.id: source.list_attachments(page_id, start, limit),
                page_size,
            )
            for attachment in attachments:
                yield attachment.id
