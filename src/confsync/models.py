"""Core confsync data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Generic, Tuple, TypeVar, Union

GLOBAL_DENY_TOKEN = "DEAD_AUTHORITY"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Page:
    """A Confluence page or blog post.

    ``body`` is ``None`` when the page could not be found; such a page is
    never ingested.
    """

    id: str
    space_key: str = ""
    title: str = ""
    body: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None
    creator: str = ""
    creator_username: str = ""
    last_modifier: str = ""
    last_modifier_username: str = ""
    mime_type: str = "text/html"
    url: str = ""
    web_url: str = ""
    version: int = 0
    type: str = "page"

    def has_content(self) -> bool:
        return self.body is not None


@dataclass(frozen=True, slots=True)
class Attachment:
    """A file attached to a page.

    ``content`` stays ``None`` until the binary has been downloaded.
    """

    id: str
    space_key: str = ""
    title: str = ""
    created_at: datetime | None = None
    modified_at: datetime | None = None
    creator: str = ""
    creator_username: str = ""
    last_modifier: str = ""
    last_modifier_username: str = ""
    mime_type: str = "application/octet-stream"
    url: str = ""
    web_url: str = ""
    version: int = 0
    type: str = "attachment"
    base_url: str = ""
    download_url: str = ""
    content: bytes | None = None

    def has_content(self) -> bool:
        return bool(self.download_url) or self.content is not None

    @property
    def full_download_url(self) -> str:
        return self.base_url + self.download_url


ContentItem = Union[Page, Attachment]


@dataclass(frozen=True, slots=True)
class Space:
    key: str
    name: str = ""


@dataclass(frozen=True, slots=True)
class ListingPage(Generic[T]):
    """One page of a paginated listing."""

    results: Tuple[T, ...]
    start: int
    limit: int
    is_last: bool


@dataclass(frozen=True, slots=True)
class RepositoryDocument:
    """Record handed to the indexing sink."""

    mime_type: str
    binary: bytes
    metadata: Dict[str, str]
    acl: Tuple[str, ...]
    deny_acl: Tuple[str, ...]
    indexed_at: datetime
    created_at: datetime | None = None
    modified_at: datetime | None = None

    @property
    def length(self) -> int:
        return len(self.binary)


@dataclass(frozen=True, slots=True)
class AuthorizationRecord:
    username: str
    spaces: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class AuthorizationResponse:
    OK = "OK"
    UNREACHABLE = "UNREACHABLE"
    USERNOTFOUND = "USERNOTFOUND"

    status: str
    tokens: Tuple[str, ...]
