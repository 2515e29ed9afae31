"""CLI entrypoint for ReadLater."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import typer

from readlater.anchors import AnchorCodec, parse_document
from readlater.client.api import ApiClient
from readlater.client.handlers import dispatcher
from readlater.client.session import ClientSession
from readlater.core.errors import AnchorError, ClientError
from readlater.models.entities import ArticleStatus
from readlater.sync.local_cache import DEFAULT_CACHE_PATH, LocalCache

app = typer.Typer(name="readlater", help="ReadLater command-line interface")

HostOption = typer.Option(None, "--host", help="Override backend host")
CacheOption = typer.Option(None, "--cache", help="Path of the local cache file")


def _resolve_cache(override: Optional[Path]) -> Path:
    if override:
        return override.expanduser()
    env_cache = os.environ.get("RLP_CACHE")
    if env_cache:
        return Path(env_cache).expanduser()
    return DEFAULT_CACHE_PATH.expanduser()


def _session(host: Optional[str], cache: Optional[Path]) -> ClientSession:
    return ClientSession(LocalCache(_resolve_cache(cache)), ApiClient(host=host))


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _dispatch(session: ClientSession, message: dict[str, Any]) -> dict[str, Any]:
    response = dispatcher.dispatch(session, message)
    _echo(response)
    if response.get("success") is False:
        raise typer.Exit(code=1)
    return response


@app.command()
def save(
    url: str = typer.Argument(..., help="Page URL"),
    html_file: Optional[Path] = typer.Option(None, "--html", help="Saved page markup to extract metadata from"),
    title: Optional[str] = typer.Option(None, "--title", help="Override the page title"),
    host: Optional[str] = HostOption,
    cache: Optional[Path] = CacheOption,
) -> None:
    """Save a page to the reading list."""
    html = html_file.expanduser().read_text(encoding="utf-8") if html_file else ""
    _dispatch(_session(host, cache), {"action": "saveArticle", "url": url, "html": html, "title": title})


@app.command("list")
def list_articles(
    remote: bool = typer.Option(False, "--remote", help="Query the server instead of the local cache"),
    tag: Optional[str] = typer.Option(None, "--tag"),
    status: Optional[ArticleStatus] = typer.Option(None, "--status"),
    search: Optional[str] = typer.Option(None, "--search"),
    sort: Optional[str] = typer.Option(None, "--sort", help="e.g. savedAt-desc"),
    page: int = typer.Option(1, "--page"),
    limit: Optional[int] = typer.Option(None, "--limit"),
    host: Optional[str] = HostOption,
    cache: Optional[Path] = CacheOption,
) -> None:
    """List saved articles."""
    session = _session(host, cache)
    if not remote:
        _echo(dispatcher.dispatch(session, {"action": "getArticles"}))
        return
    try:
        result = session.api.list_articles(
            tag=tag,
            status=status.value if status else None,
            search=search,
            sort=sort,
            page=page,
            limit=limit,
        )
    except ClientError as exc:
        typer.echo(f"{exc.message}: {exc.details}", err=True)
        raise typer.Exit(code=1)
    _echo(result)


@app.command()
def login(
    token: str = typer.Argument(..., help="Bearer token issued by the auth service"),
    cache: Optional[Path] = CacheOption,
) -> None:
    """Store the auth token in the local cache."""
    _dispatch(_session(None, cache), {"action": "setAuthToken", "token": token})


@app.command()
def logout(cache: Optional[Path] = CacheOption) -> None:
    """Forget the cached auth token."""
    _dispatch(_session(None, cache), {"action": "clearAuthToken"})


@app.command()
def sync(
    host: Optional[str] = HostOption,
    cache: Optional[Path] = CacheOption,
) -> None:
    """Reconcile the local cache with the server."""
    _dispatch(_session(host, cache), {"action": "syncArticles"})


@app.command()
def progress(
    url: str = typer.Argument(..., help="URL of a cached article"),
    percent: int = typer.Argument(..., min=0, max=100, help="Reading progress"),
    pixels: Optional[float] = typer.Option(None, "--pixels", help="Scroll offset in pixels"),
    host: Optional[str] = HostOption,
    cache: Optional[Path] = CacheOption,
) -> None:
    """Record reading progress for an article."""
    message: dict[str, Any] = {"action": "updateProgress", "url": url, "progressPercent": percent}
    if pixels is not None:
        message["scrollPosition"] = {"type": "pixel", "value": pixels}
    _dispatch(_session(host, cache), message)


@app.command()
def highlight(
    article_id: str = typer.Argument(..., help="Server id of the article"),
    html_file: Path = typer.Argument(..., help="Page markup the selection was made in"),
    text: str = typer.Argument(..., help="Text to highlight"),
    occurrence: int = typer.Option(0, "--occurrence", help="Which match to use when the text repeats"),
    color: str = typer.Option("yellow", "--color"),
    note: Optional[str] = typer.Option(None, "--note", help="Attach a note to the highlight"),
    host: Optional[str] = HostOption,
    cache: Optional[Path] = CacheOption,
) -> None:
    """Anchor a text selection in a page and store it as a highlight."""
    root = parse_document(html_file.expanduser().read_text(encoding="utf-8"))
    codec = AnchorCodec()
    try:
        selector = codec.encode(codec.select_text(root, text, occurrence), root)
    except AnchorError as exc:
        typer.echo(f"Cannot anchor selection: {exc.message}", err=True)
        raise typer.Exit(code=1)
    session = _session(host, cache)
    try:
        created = session.api.create_highlight(article_id, text, selector, color=color)
        result: dict[str, Any] = {"highlight": created}
        if note:
            result["note"] = session.api.create_note(article_id, note, highlight_id=created["id"])
    except ClientError as exc:
        typer.echo(f"{exc.message}: {exc.details}", err=True)
        raise typer.Exit(code=1)
    _echo(result)


@app.command()
def anchors(
    article_id: str = typer.Argument(..., help="Server id of the article"),
    html_file: Path = typer.Argument(..., help="Current page markup"),
    host: Optional[str] = HostOption,
    cache: Optional[Path] = CacheOption,
) -> None:
    """Resolve an article's stored highlights against a copy of the page."""
    session = _session(host, cache)
    try:
        result = session.api.resolve_anchors(article_id, html_file.expanduser().read_text(encoding="utf-8"))
    except ClientError as exc:
        typer.echo(f"{exc.message}: {exc.details}", err=True)
        raise typer.Exit(code=1)
    _echo(result)
    if result.get("failures"):
        typer.echo(f"{len(result['failures'])} highlight(s) could not be anchored", err=True)


@app.command()
def serve(
    bind: str = typer.Option("127.0.0.1", "--bind", help="Interface to listen on"),
    port: int = typer.Option(5000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Run the API server."""
    import uvicorn

    uvicorn.run("readlater.app:app", host=bind, port=port, reload=reload)


if __name__ == "__main__":
    app()
