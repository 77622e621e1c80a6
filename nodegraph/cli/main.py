"""nodegraph CLI — entry-point for store administration and node operations.

Usage:
    nodegraph --help

Sub-command groups:
    db     → create / drop the tables
    node   → save, list, show, tree, delete nodes
    serve  → run the HTTP API with uvicorn
"""

from __future__ import annotations

from typing import Optional

import typer

from nodegraph.config import configure_logging, settings
from nodegraph.db import QueryExecutor, drop_tables, get_connection, init_db
from nodegraph.db.schema import list_tables
from nodegraph.errors import NodeGraphError
from nodegraph.cli.commands.node import node_app

app = typer.Typer(
    name="nodegraph",
    help="nodegraph backend CLI.",
    no_args_is_help=True,
)
app.add_typer(node_app, name="node")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for CLI runs."),
) -> None:
    configure_logging(log_level.upper())


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init(
    id_strategy: Optional[str] = typer.Option(
        None, "--id-strategy", help="generated | caller-supplied (default from settings)."
    ),
) -> None:
    """Create the tables if they do not exist."""
    db = QueryExecutor(get_connection())
    try:
        init_db(db, id_strategy=id_strategy)
        tables = list_tables(db)
    except NodeGraphError as exc:
        typer.echo(f"[db init] ❌ {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}  tables={', '.join(tables)}")


@db_app.command("drop")
def db_drop(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Drop every table (connections, node_graphs, nodes)."""
    if not yes:
        typer.confirm(f"Drop all tables in {settings.db_path}?", abort=True)
    db = QueryExecutor(get_connection())
    try:
        drop_tables(db)
    except NodeGraphError as exc:
        typer.echo(f"[db drop] ❌ {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo("[db drop] All tables dropped.")


# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default: SERVER_HOST)."),
    port: Optional[int] = typer.Option(None, help="Port (default: SERVER_PORT)."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "nodegraph.api.app:app",
        host=host or settings.server_host,
        port=port or settings.server_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
