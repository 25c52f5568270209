"""Shared fixtures: server configuration and Confluence JSON record builders."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from confsync.config import ServerConfig

BASE_URL = "http://wiki.example.com:8090/confluence"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CONFSYNC_* variables from the developer's shell out of the tests."""
    for name in ("PROTOCOL", "HOST", "PORT", "PATH", "USERNAME", "PASSWORD"):
        monkeypatch.delenv(f"CONFSYNC_{name}", raising=False)


@pytest.fixture
def server() -> ServerConfig:
    return ServerConfig(
        protocol="http",
        host="wiki.example.com",
        port=8090,
        path="/confluence",
        username="crawler",
        password="secret",
    )


def page_record(
    doc_id: str = "42",
    *,
    space: str = "DOC",
    title: str = "Release notes",
    body: Optional[str] = "<p>Hello world</p>",
    when: str = "2020-01-01T00:00:00.000Z",
    created: str = "2019-06-01T12:30:00.000Z",
    version: int = 3,
) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": doc_id,
        "type": "page",
        "title": title,
        "space": {"key": space, "name": "Documentation"},
        "history": {
            "createdDate": created,
            "createdBy": {"displayName": "Ada Lovelace", "username": "ada"},
        },
        "version": {
            "number": version,
            "when": when,
            "by": {"displayName": "Grace Hopper", "username": "grace"},
        },
        "_links": {
            "self": f"{BASE_URL}/rest/api/content/{doc_id}",
            "webui": f"/display/{space}/{doc_id}",
            "base": BASE_URL,
        },
    }
    if body is not None:
        record["body"] = {"view": {"value": body, "representation": "storage"}}
    return record


def attachment_record(
    doc_id: str = "att7",
    *,
    space: str = "DOC",
    media_type: str = "application/pdf",
    download: str = "/download/attachments/42/manual.pdf?version=1",
) -> Dict[str, Any]:
    record = page_record(doc_id, space=space, title="manual.pdf", body=None)
    record["type"] = "attachment"
    record["extensions"] = {"mediaType": media_type, "fileSize": 1024}
    record["_links"]["download"] = download
    return record


def listing(results: List[Dict[str, Any]], *, start: int = 0, limit: int = 50, last: bool = True) -> Dict[str, Any]:
    links: Dict[str, Any] = {"base": BASE_URL, "context": "/confluence"}
    if not last:
        links["next"] = f"/rest/api/content?limit={limit}&start={start + len(results)}"
    return {"results": results, "start": start, "limit": limit, "size": len(results), "_links": links}


@pytest.fixture
def records():
    """Expose the record builders to tests."""

    class Records:
        page = staticmethod(page_record)
        attachment = staticmethod(attachment_record)
        listing = staticmethod(listing)
        base_url = BASE_URL

    return Records
