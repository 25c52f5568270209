"""Command line interface for confsync."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from confsync.config import AppConfig, JobSpec, ServerConfig
from confsync.connectors.authority import AuthorityConnector
from confsync.connectors.repository import RepositoryConnector
from confsync.errors import ConfigurationError, ServiceInterruption
from confsync.index.indexer import Crawler
from confsync.index.search import Searcher
from confsync.index.storage import SQLiteDocumentStore
from confsync.web.app import app as web_app


console = Console()
app = typer.Typer(help="confsync - synchronise a Confluence wiki into a local index")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _server(ctx: typer.Context) -> ServerConfig:
    return ctx.obj if isinstance(ctx.obj, ServerConfig) else ServerConfig.from_env()


def _config(ctx: typer.Context, db: Optional[Path]) -> AppConfig:
    defaults = AppConfig(server=_server(ctx))
    if db is not None:
        defaults.db_path = db
    return defaults


@app.callback()
def main(
    ctx: typer.Context,
    protocol: Optional[str] = typer.Option(None, help="Confluence protocol (http or https)"),
    host: Optional[str] = typer.Option(None, help="Confluence host name"),
    port: Optional[int] = typer.Option(None, help="Confluence port (default 80/443)"),
    path: Optional[str] = typer.Option(None, help="Confluence context path"),
    username: Optional[str] = typer.Option(None, help="Confluence user name"),
    password: Optional[str] = typer.Option(None, help="Confluence password"),
) -> None:
    """Connection options override the CONFSYNC_* environment variables."""
    server = ServerConfig.from_env()
    if protocol is not None:
        server.protocol = protocol
    if host is not None:
        server.host = host
    if port is not None:
        server.port = port
    if path is not None:
        server.path = path
    if username is not None:
        server.username = username
    if password is not None:
        server.password = password
    ctx.obj = server


@app.command()
def crawl(
    ctx: typer.Context,
    space: Optional[str] = typer.Option(None, "--space", help="Only crawl this space key"),
    attachments: bool = typer.Option(False, "--attachments", help="Also crawl page attachments"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run one crawl cycle into the local database."""
    _setup_logging(verbose)
    config = _config(ctx, db)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    connector = RepositoryConnector(
        config.server,
        page_size=config.page_size,
        idle_timeout=config.idle_timeout,
        request_timeout=config.request_timeout,
    )
    store = SQLiteDocumentStore(resolved_db)
    crawler = Crawler(connector, store, batch_size=config.batch_size)

    console.print(f"Crawling into [bold]{resolved_db}[/bold]...")
    try:
        stats = crawler.crawl(JobSpec(space=space, include_attachments=attachments))
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except ServiceInterruption as exc:
        console.print(f"[red]{exc}[/red]")
        console.print(f"Retry after {exc.retry_after.isoformat()}")
        raise typer.Exit(code=1)
    finally:
        connector.disconnect()
        store.close()

    console.print(
        f"Inserted: {stats.inserted}, updated: {stats.updated}, "
        f"retained: {stats.retained}, deleted: {stats.deleted}, "
        f"removed: {stats.removed}, failed: {stats.failed}"
    )
    if stats.retry_after is not None:
        console.print(f"[yellow]Retry failed documents after {stats.retry_after.isoformat()}[/yellow]")


@app.command()
def check(
    ctx: typer.Context,
    authority: bool = typer.Option(False, "--authority", help="Check the authority endpoints instead"),
) -> None:
    """Check that the Confluence instance can be reached."""
    server = _server(ctx)
    connector = AuthorityConnector(server) if authority else RepositoryConnector(server)
    try:
        status = connector.check()
    finally:
        connector.disconnect()
    console.print(status)
    if status != "Connection working":
        raise typer.Exit(code=1)


@app.command()
def authorize(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="User to resolve"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show the spaces a user may view."""
    _setup_logging(verbose)
    connector = AuthorityConnector(_server(ctx))
    try:
        response = connector.get_authorization_response(username)
    finally:
        connector.disconnect()

    console.print(f"Status: [bold]{response.status}[/bold]")
    for token in response.tokens:
        console.print(f"  {token}")


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Query text"),
    user: Optional[str] = typer.Option(None, "--user", help="Resolve access through this user"),
    spaces: List[str] = typer.Option([], "--space", help="Search as a user allowed these spaces"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    top_k: int = typer.Option(10, help="Number of results to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search ingested documents visible to a user."""
    _setup_logging(verbose)
    config = _config(ctx, db)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")
    if user is None and not spaces:
        raise typer.BadParameter("Pass --user or at least one --space")

    tokens = set(spaces)
    if user is not None:
        connector = AuthorityConnector(config.server, page_size=config.page_size)
        try:
            tokens.update(connector.get_authorization_response(user).tokens)
        finally:
            connector.disconnect()

    store = SQLiteDocumentStore(resolved_db)
    try:
        results = Searcher(store).search(query, tokens, top_k=top_k)
    finally:
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Space")
    table.add_column("Snippet")

    for result in results:
        table.add_row(f"{result.score:.0f}", result.title or result.doc_id, result.space, result.snippet)

    console.print(table)


@app.command()
def documents(
    ctx: typer.Context,
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """List ingested documents."""
    config = _config(ctx, db)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to list.[/yellow]")
        return

    store = SQLiteDocumentStore(resolved_db)
    try:
        rows = store.list_documents()
    finally:
        store.close()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Id")
    table.add_column("Title")
    table.add_column("Space")
    table.add_column("Version")
    table.add_column("Size")
    for row in rows:
        table.add_row(row["doc_id"], row["title"] or "", row["space"] or "", row["version"], str(row["size"]))
    console.print(table)
    console.print(f"{len(rows)} document(s)")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Start the web API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        console.print("[yellow]Warning: database not found, searches might fail.[/yellow]")

    console.print(f"Starting web API on http://{host}:{port} (database: {resolved_db})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
