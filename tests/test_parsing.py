"""Tests for Confluence JSON record parsing."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from confsync.errors import ParseError
from confsync.models import Attachment, Page
from confsync.source.parsing import (
    parse_attachment,
    parse_content,
    parse_listing,
    parse_page,
    parse_permissions,
    parse_space,
)


class TestParsePage:
    """Test page record parsing."""

    def test_full_record(self, records) -> None:
        page = parse_page(records.page())

        assert page.id == "42"
        assert page.space_key == "DOC"
        assert page.title == "Release notes"
        assert page.body == "<p>Hello world</p>"
        assert page.version == 3
        assert page.creator == "Ada Lovelace"
        assert page.creator_username == "ada"
        assert page.last_modifier_username == "grace"
        assert page.modified_at == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert page.created_at == datetime(2019, 6, 1, 12, 30, tzinfo=timezone.utc)
        assert page.web_url == f"{records.base_url}/display/DOC/42"

    def test_minimal_record(self) -> None:
        """Should tolerate missing nested objects."""
        page = parse_page({"id": "7"})

        assert page.id == "7"
        assert page.type == "page"
        assert page.body is None
        assert page.modified_at is None
        assert page.version == 0
        assert not page.has_content()

    def test_wrong_shaped_nested_objects(self) -> None:
        page = parse_page({"id": "7", "version": "oops", "body": [], "space": None})

        assert page.version == 0
        assert page.body is None
        assert page.space_key == ""

    def test_missing_id(self) -> None:
        with pytest.raises(ParseError, match="id"):
            parse_page({"title": "no id"})

    def test_not_an_object(self) -> None:
        with pytest.raises(ParseError):
            parse_page(["42"])


class TestParseAttachment:
    def test_attachment_fields(self, records) -> None:
        attachment = parse_attachment(records.attachment())

        assert attachment.mime_type == "application/pdf"
        assert attachment.download_url.startswith("/download/attachments/42/")
        assert attachment.base_url == records.base_url
        assert attachment.has_content()

    def test_base_url_fallback(self) -> None:
        attachment = parse_attachment({"id": "a1", "type": "attachment"}, base_url="http://fallback")

        assert attachment.base_url == "http://fallback"
        assert attachment.mime_type == "application/octet-stream"
        assert not attachment.has_content()


class TestParseContent:
    def test_dispatches_on_type(self, records) -> None:
        assert isinstance(parse_content(records.page()), Page)
        assert isinstance(parse_content(records.attachment()), Attachment)


class TestParseListing:
    def test_last_page_without_next_link(self, records) -> None:
        listing = parse_listing(records.listing([records.page("1"), records.page("2")]), parse_page)

        assert listing.is_last
        assert [page.id for page in listing.results] == ["1", "2"]

    def test_next_link_means_more(self, records) -> None:
        listing = parse_listing(records.listing([records.page("1")], last=False), parse_page)

        assert not listing.is_last

    def test_missing_links_is_last(self) -> None:
        listing = parse_listing({"results": []}, parse_page)

        assert listing.is_last
        assert listing.results == ()

    def test_missing_results(self) -> None:
        with pytest.raises(ParseError, match="results"):
            parse_listing({"start": 0}, parse_page)

    def test_results_not_a_list(self) -> None:
        with pytest.raises(ParseError):
            parse_listing({"results": {"id": "1"}}, parse_page)

    def test_bad_paging_fields(self) -> None:
        with pytest.raises(ParseError):
            parse_listing({"results": [], "start": "first"}, parse_page)


class TestParseMisc:
    def test_space(self) -> None:
        space = parse_space({"key": "DOC", "name": "Documentation"})

        assert space.key == "DOC"
        assert space.name == "Documentation"

    def test_permissions(self) -> None:
        assert parse_permissions(["view", "edit"]) == ["view", "edit"]

    def test_permissions_require_array(self) -> None:
        with pytest.raises(ParseError):
            parse_permissions({"permissions": ["view"]})
