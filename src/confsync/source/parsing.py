"""Pure functions turning decoded JSON records into model objects.

Every optional nested object (``_links``, ``history``, ``version``, ``body``,
``space``, ``extensions``) falls back to an empty value when it is missing or
has the wrong shape. Only a record without the mandatory top-level fields
raises :class:`ParseError`.
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, TypeVar

from confsync.errors import ParseError
from confsync.models import Attachment, ContentItem, ListingPage, Page, Space
from confsync.utils.timestamps import parse_timestamp

T = TypeVar("T")


def _obj(record: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = record.get(key)
    return value if isinstance(value, Mapping) else {}


def _str(record: Mapping[str, Any], key: str, default: str = "") -> str:
    value = record.get(key)
    if value is None:
        return default
    return str(value)


def _require(record: Any, *keys: str) -> Mapping[str, Any]:
    if not isinstance(record, Mapping):
        raise ParseError(f"Expected a JSON object, got {type(record).__name__}")
    missing = [key for key in keys if key not in record]
    if missing:
        raise ParseError(f"Missing required field(s): {', '.join(missing)}")
    return record


def _common_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    links = _obj(record, "_links")
    history = _obj(record, "history")
    created_by = _obj(history, "createdBy")
    version = _obj(record, "version")
    modified_by = _obj(version, "by")

    try:
        version_number = int(version.get("number", 0) or 0)
    except (TypeError, ValueError):
        version_number = 0

    return {
        "id": _str(record, "id"),
        "type": _str(record, "type"),
        "title": _str(record, "title"),
        "space_key": _str(_obj(record, "space"), "key"),
        "url": _str(links, "self"),
        "web_url": _str(links, "base") + _str(links, "webui"),
        "created_at": parse_timestamp(history.get("createdDate")),
        "creator": _str(created_by, "displayName"),
        "creator_username": _str(created_by, "username"),
        "modified_at": parse_timestamp(version.get("when")),
        "last_modifier": _str(modified_by, "displayName"),
        "last_modifier_username": _str(modified_by, "username"),
        "version": version_number,
    }


def parse_page(record: Any) -> Page:
    """Build a :class:`Page` from a ``/rest/api/content`` record."""
    record = _require(record, "id")
    fields = _common_fields(record)
    fields["type"] = fields["type"] or "page"
    view = _obj(_obj(record, "body"), "view")
    body = view.get("value")
    fields["body"] = body if isinstance(body, str) else None
    return Page(**fields)


def parse_attachment(record: Any, *, base_url: str = "") -> Attachment:
    """Build an :class:`Attachment` from a ``/rest/api/content`` record."""
    record = _require(record, "id")
    fields = _common_fields(record)
    fields["type"] = fields["type"] or "attachment"
    links = _obj(record, "_links")
    media_type = _str(_obj(record, "extensions"), "mediaType")
    if media_type:
        fields["mime_type"] = media_type
    return Attachment(
        base_url=_str(links, "base", base_url),
        download_url=_str(links, "download"),
        **fields,
    )


def parse_content(record: Any, *, base_url: str = "") -> ContentItem:
    """Dispatch on the record ``type`` to a page or an attachment."""
    record = _require(record, "id")
    if record.get("type") == "attachment":
        return parse_attachment(record, base_url=base_url)
    return parse_page(record)


def parse_space(record: Any) -> Space:
    record = _require(record, "key")
    return Space(key=_str(record, "key"), name=_str(record, "name"))


def parse_listing(record: Any, parse_item: Callable[[Any], T]) -> ListingPage[T]:
    """Build a :class:`ListingPage` from a paginated response.

    The listing is last iff ``_links`` carries no ``next`` entry.
    """
    record = _require(record, "results")
    results = record["results"]
    if not isinstance(results, list):
        raise ParseError("Field 'results' is not a list")
    try:
        start = int(record.get("start", 0))
        limit = int(record.get("limit", len(results)))
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Bad paging fields: {exc}") from exc
    is_last = not _obj(record, "_links").get("next")
    return ListingPage(
        results=tuple(parse_item(item) for item in results),
        start=start,
        limit=limit,
        is_last=is_last,
    )


def parse_permissions(record: Any) -> List[str]:
    """Decode a permission-name array from the JSON-RPC API."""
    if not isinstance(record, list):
        raise ParseError("Expected a JSON array of permission names")
    return [str(name) for name in record]
