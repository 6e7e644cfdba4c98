"""Command-line entry point: index maintenance and view builds without the HTTP server."""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Optional

import typer
from rich import print
from rich.table import Table

from .models.view import ViewOptions
from .services.config import configure_logging, get_config
from .services.database import DatabaseService
from .services.indexer import IndexerService
from .services.storage import FileTextStore
from .services.vault import VaultService
from .services.view_loader import LoaderState, ViewLoader, ViewLoadResult

APP_HELP = """
lattice: persisted canvas views over a Markdown vault.

Views are rebuilt from the vault and the note index, merged with the stored
document (positions you arranged are kept) and written back under the view
store. Configuration comes from the environment (VAULT_PATH, VIEW_STORE_PATH,
INDEX_DB_PATH, ...) or a .env file.
"""

app = typer.Typer(name="lattice", help=APP_HELP, no_args_is_help=True)
view_app = typer.Typer(name="view", help="Build a view and print its nodes.")
app.add_typer(view_app, name="view")


def _services() -> tuple[VaultService, IndexerService]:
    config = get_config()
    vault = VaultService(config=config)
    return vault, IndexerService(DatabaseService(config=config), vault)


def _loader() -> ViewLoader:
    config = get_config()
    vault, indexer = _services()
    return ViewLoader(store=FileTextStore(config=config), vault=vault, index=indexer, config=config)


def _run_view(
    loader: ViewLoader, load: Awaitable[Optional[ViewLoadResult]]
) -> Optional[ViewLoadResult]:
    async def run() -> Optional[ViewLoadResult]:
        result = await load
        if result is not None and result.state == LoaderState.REBUILDING:
            # A stale document was returned; wait for the refreshed one.
            await loader.wait_for_background()
            return loader.snapshot()
        return result

    return asyncio.run(run())


def _report(result: Optional[ViewLoadResult], json_output: bool) -> None:
    if result is None:
        print("[red]Selector cannot be empty[/red]")
        raise typer.Exit(code=2)

    if json_output:
        payload = {
            "path": result.path,
            "state": result.state.value,
            "error": result.error,
            "doc": result.doc.model_dump(by_alias=True, exclude_none=True) if result.doc else None,
        }
        typer.echo(json.dumps(payload, default=str))
    elif result.doc is not None:
        table = Table(title=f"{result.doc.title} ({result.path})")
        table.add_column("ID", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Position")
        table.add_column("Parent", style="dim")
        for node in result.doc.nodes:
            table.add_row(
                node.id,
                node.type,
                f"{node.position.x}, {node.position.y}",
                node.parent_node or "",
            )
        print(table)

    if result.state == LoaderState.FAILED:
        print(f"[red]View build failed: {result.error}[/red]")
        raise typer.Exit(code=1)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
):
    configure_logging(log_level.upper() if log_level else None)


@app.command("rebuild-index")
def rebuild_index():
    """Rebuild the note index from every note in the vault."""
    _, indexer = _services()
    count = asyncio.run(indexer.rebuild_index())
    print(f"[green]Indexed {count} notes[/green]")


@app.command()
def health(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """Show note count and rebuild timestamps of the index."""
    _, indexer = _services()
    stats = indexer.get_health()

    if json_output:
        typer.echo(json.dumps(stats.model_dump(), default=str))
        return

    table = Table(title="Index Health")
    table.add_column("Notes", style="cyan")
    table.add_column("Last full rebuild")
    table.add_row(
        str(stats.note_count),
        str(stats.last_full_rebuild or "never"),
    )
    print(table)


@view_app.command("global")
def view_global(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Whole-vault view."""
    loader = _loader()
    options = ViewOptions(recursive=True, limit=limit) if limit else None
    _report(_run_view(loader, loader.load_global_view(options)), json_output)


@view_app.command("folder")
def view_folder(
    directory: str = typer.Argument("", help="Folder relative to the vault root"),
    recursive: bool = typer.Option(True, "--recursive/--flat"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """View of one folder."""
    loader = _loader()
    options = ViewOptions(recursive=recursive, limit=limit or loader.config.folder_view_limit)
    _report(_run_view(loader, loader.load_folder_view(directory, options)), json_output)


@view_app.command("tag")
def view_tag(
    tag: str = typer.Argument(..., help="Tag, with or without '#'"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """View of the notes carrying a tag."""
    loader = _loader()
    options = ViewOptions(limit=limit) if limit else None
    _report(_run_view(loader, loader.load_tag_view(tag, options)), json_output)


@view_app.command("search")
def view_search(
    query: str = typer.Argument(..., help="Full-text query"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """View of the notes matching a query."""
    loader = _loader()
    options = ViewOptions(limit=limit) if limit else None
    _report(_run_view(loader, loader.load_search_view(query, options)), json_output)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("lattice_views.api.main:app", host=host, port=port, reload=reload)


__all__ = ["app"]
