"""Tests for version-marker decisions."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from confsync.errors import TransportError
from confsync.models import Attachment, Page
from confsync.sync.versioning import Delete, Ingest, Retain, VersionGate, decide_for_item

MODIFIED = datetime(2020, 1, 1, tzinfo=timezone.utc)


class StubSource:
    def __init__(self, item=None, error: Exception | None = None) -> None:
        self.item = item
        self.error = error
        self.requested: list[str] = []

    def fetch_document(self, doc_id: str):
        self.requested.append(doc_id)
        if self.error is not None:
            raise self.error
        return self.item


class TestDecideForItem:
    """Test ingest / retain / delete decisions."""

    def test_new_document_is_ingested(self) -> None:
        page = Page(id="42", body="<p>x</p>", modified_at=MODIFIED)

        decision = decide_for_item(page, None)

        assert decision == Ingest(page, "2020-01-01T00:00:00Z")

    def test_same_marker_is_retained(self) -> None:
        page = Page(id="42", body="<p>x</p>", modified_at=MODIFIED)

        assert decide_for_item(page, "2020-01-01T00:00:00Z") == Retain("42")

    def test_changed_marker_is_ingested(self) -> None:
        page = Page(id="42", body="<p>x</p>", modified_at=MODIFIED)

        decision = decide_for_item(page, "2019-12-31T00:00:00Z")

        assert isinstance(decision, Ingest)
        assert decision.version == "2020-01-01T00:00:00Z"

    def test_missing_content_is_deleted(self) -> None:
        assert decide_for_item(Page(id="42"), "2020-01-01T00:00:00Z") == Delete("42")

    def test_attachment_with_download_link(self) -> None:
        attachment = Attachment(id="a1", download_url="/download/a1", modified_at=MODIFIED)

        assert isinstance(decide_for_item(attachment, None), Ingest)


class TestVersionGate:
    def test_fetches_then_decides(self) -> None:
        source = StubSource(Page(id="42", body="x", modified_at=MODIFIED))

        decision = VersionGate(source).decide("42", "2020-01-01T00:00:00Z")

        assert decision == Retain("42")
        assert source.requested == ["42"]

    def test_fetch_failure_is_not_a_deletion(self) -> None:
        source = StubSource(error=TransportError("timed out"))

        with pytest.raises(TransportError):
            VersionGate(source).decide("42", "2020-01-01T00:00:00Z")
