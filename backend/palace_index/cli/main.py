"""CLI entrypoint for the palace index."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, NoReturn, Optional

import orjson
import typer

from palace_index.core.config import Settings, get_settings
from palace_index.core.errors import PalaceError
from palace_index.core.logging import configure_logging
from palace_index.core.workspace import load_guardrails, require_workspace
from palace_index.db.sqlite import SQLiteDatabase
from palace_index.db.store import ContentStore
from palace_index.ingest.pipeline import Scanner
from palace_index.ingest.watcher import Watcher
from palace_index.models.entities import CallSite
from palace_index.retrieval import Butler, CallGraphQuery
from palace_index.verify.collect import collect as collect_pack
from palace_index.verify.signal import GitDiffProvider, generate_change_signal
from palace_index.verify.stale import verify as verify_index

app = typer.Typer(name="palace", help="Palace index command-line interface")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    settings = get_settings()
    configure_logging("DEBUG" if verbose else "WARNING", use_json=settings.log_json)


def _resolve_root(override: Optional[Path], settings: Settings) -> Path:
    return (override or settings.workspace_root).expanduser().resolve()


def _open_store(root: Path, settings: Settings) -> ContentStore:
    try:
        require_workspace(root)
    except PalaceError as exc:
        _fail(exc)
    return ContentStore(SQLiteDatabase(settings.database_path(root)))


def _emit(payload: Any) -> None:
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2, default=str).decode("utf-8"))


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"error: {exc}", err=True)
    raise typer.Exit(code=1)


def _sites(calls: list[CallSite]) -> list[dict[str, Any]]:
    return [
        {
            "file_path": call.file_path,
            "line": call.line,
            "callee_symbol": call.callee_symbol,
            "caller_symbol": call.caller_symbol,
        }
        for call in calls
    ]


@app.command()
def scan(
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
) -> None:
    """Rebuild the index for the workspace."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        summary = Scanner(workspace, store, settings).scan()
    except PalaceError as exc:
        _fail(exc)
    finally:
        store.db.close()
    _emit(summary.to_dict())


@app.command()
def verify(
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    diff: Optional[str] = typer.Option(None, "--diff", help="Git diff range such as HEAD~1..HEAD"),
    mode: Optional[str] = typer.Option(None, "--mode", help="fast or strict"),
) -> None:
    """Report stale index entries. Exits with status 1 when anything is stale."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    selected = mode or settings.verify_mode
    if selected not in ("fast", "strict"):
        typer.echo(f"error: unknown verify mode {selected!r}", err=True)
        raise typer.Exit(code=2)
    store = _open_store(workspace, settings)
    try:
        report = verify_index(
            workspace,
            store,
            diff_range=diff,
            mode=selected,
            provider=GitDiffProvider(settings.git_binary),
        )
    except PalaceError as exc:
        _fail(exc)
    finally:
        store.db.close()
    _emit(
        {
            "ok": report.ok,
            "stale": report.stale,
            "scope_kind": report.scope_kind,
            "scope_source": report.scope_source,
            "candidate_count": report.candidate_count,
            "mode": report.mode,
            "diff_range": report.diff_range,
        }
    )
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of results"),
    room: Optional[str] = typer.Option(None, "--room", help="Only return results from this room"),
    explain: bool = typer.Option(False, "--explain", help="Show the factor of every ranking boost"),
) -> None:
    """Ranked search over the index, grouped by room."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        butler = Butler(store, workspace, settings=settings)
        groups = butler.search(query, limit=limit, room=room)
        suggestions = [] if groups else butler.suggest_for_query(query)
    except PalaceError as exc:
        _fail(exc)
    finally:
        store.db.close()
    _emit(
        {
            "query": query,
            "groups": [
                {
                    "room": group.room,
                    "summary": group.summary,
                    "results": [
                        {
                            "path": result.path,
                            "start_line": result.start_line,
                            "end_line": result.end_line,
                            "score": round(result.score, 4),
                            "is_entry": result.is_entry,
                            **({"boosts": result.boosts} if explain else {}),
                        }
                        for result in group.results
                    ],
                }
                for group in groups
            ],
            "suggestions": suggestions,
        }
    )


@app.command()
def signal(
    diff: str = typer.Argument(..., help="Git diff range to record"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
) -> None:
    """Write the change-signal artifact for a diff range."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    try:
        change_signal = generate_change_signal(workspace, diff, provider=GitDiffProvider(settings.git_binary))
    except PalaceError as exc:
        _fail(exc)
    _emit(change_signal.model_dump(by_alias=True, exclude_none=True))


@app.command()
def collect(
    goal: str = typer.Argument(..., help="What the context pack is for"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    diff: Optional[str] = typer.Option(None, "--diff", help="Limit the scope to a diff range"),
    allow_stale: bool = typer.Option(False, "--allow-stale", help="Skip the staleness gate"),
) -> None:
    """Assemble a context pack from a fresh index."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        pack = collect_pack(
            workspace,
            store,
            goal,
            diff_range=diff,
            allow_stale=allow_stale,
            settings=settings,
            provider=GitDiffProvider(settings.git_binary),
        )
    except PalaceError as exc:
        _fail(exc)
    finally:
        store.db.close()
    _emit(pack.model_dump(by_alias=True))


@app.command()
def callers(
    symbol: str = typer.Argument(..., help="Symbol name"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    count: bool = typer.Option(False, "--count", help="Only print the number of call sites"),
) -> None:
    """List call sites that target a symbol."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        query = CallGraphQuery(store)
        if count:
            _emit({"symbol": symbol, "count": query.callers_count(symbol)})
            return
        calls = query.incoming_calls(symbol)
    finally:
        store.db.close()
    _emit({"symbol": symbol, "calls": _sites(calls)})


@app.command()
def top(
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of symbols to show"),
) -> None:
    """List the most frequently called symbols."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        ranked = CallGraphQuery(store).most_called_symbols(limit)
    finally:
        store.db.close()
    _emit({"symbols": [{"symbol": name, "callers": callers} for name, callers in ranked]})


@app.command()
def callees(
    symbol: str = typer.Argument(..., help="Symbol name"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    file: Optional[str] = typer.Option(None, "--file", help="File that defines the symbol"),
) -> None:
    """List calls made inside a symbol."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        calls = CallGraphQuery(store).outgoing_calls(symbol, file_path=file)
    except PalaceError as exc:
        _fail(exc)
    finally:
        store.db.close()
    _emit({"symbol": symbol, "calls": _sites(calls)})


@app.command()
def graph(
    file: str = typer.Argument(..., help="Workspace-relative file path"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
) -> None:
    """Show incoming and outgoing calls of a file."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        result = CallGraphQuery(store).call_graph(file)
    finally:
        store.db.close()
    _emit(
        {
            "scope": result.scope,
            "incoming_calls": _sites(result.incoming_calls),
            "outgoing_calls": _sites(result.outgoing_calls),
        }
    )


@app.command()
def rooms(
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
) -> None:
    """List curated rooms."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        listed = Butler(store, workspace, settings=settings).list_rooms()
    finally:
        store.db.close()
    _emit([room.model_dump(by_alias=True) for room in listed])


@app.command()
def suggest(
    term: str = typer.Argument(..., help="Possibly misspelled word or symbol"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Maximum suggestions"),
) -> None:
    """Suggest indexed symbols and common terms close to a word."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        matches = Butler(store, workspace, settings=settings).suggest(term, limit=limit)
    finally:
        store.db.close()
    _emit(
        {
            "term": term,
            "suggestions": [
                {"term": match.term, "distance": match.distance, "score": round(match.score, 4)} for match in matches
            ],
        }
    )


@app.command()
def show(
    path: str = typer.Argument(..., help="Workspace-relative file path"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
) -> None:
    """Print an indexed file as stored in the index."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    try:
        content = Butler(store, workspace, settings=settings).read_file(path)
    except PalaceError as exc:
        _fail(exc)
    finally:
        store.db.close()
    typer.echo(content)


@app.command()
def watch(
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root"),
    debounce: Optional[float] = typer.Option(None, "--debounce", help="Seconds of quiet before rescanning"),
) -> None:
    """Rescan the workspace whenever files change. Stop with Ctrl+C."""
    settings = get_settings()
    workspace = _resolve_root(root, settings)
    store = _open_store(workspace, settings)
    scanner = Scanner(workspace, store, settings)
    try:
        scanner.scan()
    except PalaceError as exc:
        store.db.close()
        _fail(exc)
    watcher = Watcher(
        workspace,
        load_guardrails(workspace),
        scanner.scan,
        debounce if debounce is not None else settings.watch_debounce_seconds,
    )
    watcher.start()
    typer.echo(f"watching {workspace}", err=True)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()
        store.db.close()


if __name__ == "__main__":
    app()
