"""Helpers for building Confluence URLs."""

from __future__ import annotations

import re

_SLASHES = re.compile(r"/+")


def sanitize_url(url: str) -> str:
    """Collapse repeated slashes in everything after the scheme."""
    scheme, sep, rest = url.partition("://")
    if not sep:
        return _SLASHES.sub("/", url)
    return f"{scheme}://{_SLASHES.sub('/', rest)}"


def join_url(base: str, *parts: str) -> str:
    """Join path parts onto ``base`` without producing doubled slashes."""
    return sanitize_url("/".join([base, *parts]))
