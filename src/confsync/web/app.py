"""FastAPI application exposing crawl, authority and search endpoints."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from confsync import __version__
from confsync.config import AppConfig, JobSpec, ServerConfig
from confsync.connectors.authority import AuthorityConnector
from confsync.connectors.repository import RepositoryConnector
from confsync.errors import ConfigurationError, ServiceInterruption
from confsync.index.indexer import Crawler
from confsync.index.search import Searcher, SearchResult
from confsync.index.storage import SQLiteDocumentStore

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="confsync", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchPayload(BaseModel):
    query: str
    username: str
    db: Path | None = None
    top_k: int = 10


class CrawlPayload(BaseModel):
    space: str | None = None
    attachments: bool = False
    db: Path | None = None


def _resolve_db_path(db: Path | None) -> Path:
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/check")
async def check_connection() -> dict[str, str]:
    server = ServerConfig.from_env()
    repository = RepositoryConnector(server)
    authority = AuthorityConnector(server)
    try:
        repository_status = await asyncio.to_thread(repository.check)
        authority_status = await asyncio.to_thread(authority.check)
    finally:
        repository.disconnect()
        authority.disconnect()
    return {"repository": repository_status, "authority": authority_status}


@app.get("/authorize/{username}")
async def authorize_user(username: str) -> dict[str, Any]:
    connector = AuthorityConnector(ServerConfig.from_env())
    try:
        response = await asyncio.to_thread(connector.get_authorization_response, username)
    finally:
        connector.disconnect()
    return {"username": username, "status": response.status, "tokens": list(response.tokens)}


def _run_crawl_job(spec: JobSpec, config: AppConfig, resolved_db: Path) -> dict[str, Any]:
    connector = RepositoryConnector(
        config.server,
        page_size=config.page_size,
        idle_timeout=config.idle_timeout,
        request_timeout=config.request_timeout,
    )
    store = SQLiteDocumentStore(resolved_db)
    crawler = Crawler(connector, store, batch_size=config.batch_size)
    try:
        stats = crawler.crawl(spec)
    finally:
        connector.disconnect()
        store.close()

    return {
        "inserted": stats.inserted,
        "updated": stats.updated,
        "retained": stats.retained,
        "deleted": stats.deleted,
        "removed": stats.removed,
        "failed": stats.failed,
        "retry_after": stats.retry_after.isoformat() if stats.retry_after else None,
    }


@app.post("/crawl")
async def crawl_documents(payload: CrawlPayload) -> dict[str, Any]:
    config = AppConfig(db_path=payload.db if payload.db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)
    spec = JobSpec(space=payload.space, include_attachments=payload.attachments)

    try:
        stats = await asyncio.to_thread(_run_crawl_job, spec, config, resolved_db)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ServiceInterruption as exc:
        LOGGER.warning("Crawl interrupted: %s", exc)
        raise HTTPException(
            status_code=503,
            detail={"message": str(exc), "retry_after": exc.retry_after.isoformat()},
        ) from exc

    return {"status": "ok", "db": str(resolved_db), "stats": stats}


@app.post("/search")
async def search_documents(payload: SearchPayload) -> dict[str, List[SearchResult]]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")
    username = payload.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="Empty username")

    top_k = max(1, min(payload.top_k, 50))

    resolved_db = _resolve_db_path(payload.db)
    if not resolved_db.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Database not found at {resolved_db}. Run a crawl first.",
        )

    connector = AuthorityConnector(ServerConfig.from_env())
    try:
        response = await asyncio.to_thread(connector.get_authorization_response, username)
    finally:
        connector.disconnect()
    tokens = set(response.tokens)

    store = SQLiteDocumentStore(resolved_db)
    try:
        results = Searcher(store).search(query, tokens, top_k=top_k)
    finally:
        store.close()
    return {"results": results}


@app.get("/documents")
async def list_documents(db: Path | None = None) -> dict[str, Any]:
    """List all ingested documents in the database."""
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        return {"documents": [], "stats": {"document_count": 0, "space_count": 0, "total_size_bytes": 0}}

    store = SQLiteDocumentStore(resolved_db)
    try:
        documents = store.list_documents()
        stats = store.get_stats()
    finally:
        store.close()

    return {"documents": documents, "stats": stats}


@app.delete("/documents/{doc_id}")
async def delete_document(doc_id: str, db: Path | None = None) -> dict[str, Any]:
    """Delete a document by its Confluence id."""
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        raise HTTPException(status_code=404, detail="Database not found")

    store = SQLiteDocumentStore(resolved_db)
    try:
        deleted = store.delete_document(doc_id)
    finally:
        store.close()

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document with ID {doc_id} not found")

    return {"status": "ok", "deleted_id": doc_id}
