"""Per-document ingest / retain / delete decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from confsync.models import ContentItem
from confsync.utils.timestamps import format_version_marker

LOGGER = logging.getLogger(__name__)


class DocumentSource(Protocol):
    def fetch_document(self, doc_id: str) -> ContentItem: ...


@dataclass(frozen=True, slots=True)
class Ingest:
    item: ContentItem
    version: str


@dataclass(frozen=True, slots=True)
class Retain:
    doc_id: str


@dataclass(frozen=True, slots=True)
class Delete:
    doc_id: str


Decision = Union[Ingest, Retain, Delete]


def decide_for_item(item: ContentItem, stored_marker: Optional[str]) -> Decision:
    """Decide what to do with an already fetched item."""
    if not item.has_content():
        return Delete(item.id)
    marker = format_version_marker(item.modified_at)
    if stored_marker and marker == stored_marker:
        return Retain(item.id)
    return Ingest(item, marker)


class VersionGate:
    """Fetches a document and compares it with its stored version marker.

    Errors raised by the source propagate untouched; a failed fetch is never
    read as a deletion.
    """

    def __init__(self, source: DocumentSource) -> None:
        self.source = source

    def decide(self, doc_id: str, stored_marker: Optional[str]) -> Decision:
        item = self.source.fetch_document(doc_id)
        decision = decide_for_item(item, stored_marker)
        LOGGER.debug("Document %s: %s", doc_id, type(decision).__name__)
        return decision
