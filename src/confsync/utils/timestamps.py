"""Timestamp parsing and the canonical version marker format."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

LOGGER = logging.getLogger(__name__)

MARKER_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp as sent by Confluence.

    Returns ``None`` for missing or unparseable values. Naive values are taken
    to be UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        LOGGER.debug("Unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_version_marker(value: datetime | None) -> str:
    """Render ``value`` as the locale-independent version marker.

    The marker is compared by plain string equality, so the rendering must
    never depend on the host's locale or time zone.
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(MARKER_FORMAT)
