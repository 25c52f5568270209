"""Conversion of fetched content into records for the indexing sink."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from confsync.models import GLOBAL_DENY_TOKEN, Attachment, ContentItem, RepositoryDocument
from confsync.utils.timestamps import format_version_marker


def _metadata(item: ContentItem, size: int) -> Dict[str, str]:
    fields: Dict[str, Optional[str]] = {
        "id": item.id,
        "type": item.type,
        "title": item.title,
        "space": item.space_key,
        "url": item.url,
        "web_url": item.web_url,
        "createdDate": format_version_marker(item.created_at) or None,
        "lastModified": format_version_marker(item.modified_at) or None,
        "mimetype": item.mime_type,
        "version": str(item.version),
        "creator": item.creator,
        "creatorUsername": item.creator_username,
        "lastModifier": item.last_modifier,
        "lastModifierUsername": item.last_modifier_username,
        "size": str(size),
    }
    if isinstance(item, Attachment):
        fields["downloadUrl"] = item.full_download_url
    return {key: value for key, value in fields.items() if value is not None}


def _binary(item: ContentItem) -> bytes:
    if isinstance(item, Attachment):
        if item.content is None:
            raise ValueError(f"Attachment {item.id} has not been downloaded")
        return item.content
    if item.body is None:
        raise ValueError(f"Page {item.id} has no body")
    return item.body.encode("utf-8")


def assemble(item: ContentItem, *, indexed_at: datetime | None = None) -> RepositoryDocument:
    """Build the ingestable record for ``item``. Performs no I/O.

    Access is granted to the document's space and denied to the global deny
    token, so a user sees the document iff their authority lists the space.
    """
    binary = _binary(item)
    return RepositoryDocument(
        mime_type=item.mime_type,
        binary=binary,
        metadata=_metadata(item, len(binary)),
        acl=(item.space_key,),
        deny_acl=(GLOBAL_DENY_TOKEN,),
        indexed_at=indexed_at or datetime.now(timezone.utc),
        created_at=item.created_at,
        modified_at=item.modified_at,
    )
