"""Node commands: save, list, show, tree, delete."""

from __future__ import annotations

import json
from typing import List, NoReturn, Optional

import typer

from nodegraph.db import QueryExecutor, get_connection, init_db
from nodegraph.db.models import NodeInput
from nodegraph.db.nodes import delete_node, load_node, load_nodes, save_node
from nodegraph.errors import NodeGraphError
from nodegraph.cli.rendering import render_tree

node_app = typer.Typer(help="Create, inspect and delete nodes.", no_args_is_help=True)


def _fail(command: str, exc: NodeGraphError) -> NoReturn:
    typer.echo(f"[node {command}] ❌ {exc}", err=True)
    raise typer.Exit(code=1)


def _open(command: str) -> QueryExecutor:
    db = QueryExecutor(get_connection())
    try:
        init_db(db)
    except NodeGraphError as exc:
        db.close()
        _fail(command, exc)
    return db


@node_app.command("save")
def node_save(
    title: str = typer.Option(..., help="Node title."),
    node_id: Optional[str] = typer.Option(None, "--id", help="Node id (generated when omitted)."),
    description: Optional[str] = typer.Option(None, help="Free-text description."),
    node_type: Optional[str] = typer.Option(None, "--type", help="Node type (default: normal)."),
    parent: Optional[str] = typer.Option(None, help="Parent node id."),
    super_node: Optional[str] = typer.Option(None, "--super-node", help="Super node id."),
    connect: List[str] = typer.Option([], "--connect", help="Target node id (repeatable)."),
    image: List[str] = typer.Option([], "--image", help="Image URL (repeatable)."),
    graph: Optional[str] = typer.Option(None, help="Graph id to add the node to."),
    dx: Optional[float] = typer.Option(None, help="Horizontal offset."),
    dy: Optional[float] = typer.Option(None, help="Vertical offset."),
) -> None:
    """Create or update a node.  Its connections are replaced by --connect."""
    position = None
    if dx is not None or dy is not None:
        position = {"dx": dx or 0, "dy": dy or 0}

    db = _open("save")
    try:
        result = save_node(
            db,
            NodeInput(
                id=node_id,
                title=title,
                description=description,
                images=image or None,
                type=node_type,
                parent_id=parent,
                super_node_id=super_node,
                position=position,
                connections=connect,
                graph_id=graph,
            ),
        )
    except NodeGraphError as exc:
        _fail("save", exc)
    finally:
        db.close()

    verb = "Created" if result.created else "Updated"
    typer.echo(f"[node save] {verb} node: {result.id}  title={title!r}")


@node_app.command("list")
def node_list() -> None:
    """List all nodes with their outgoing connections."""
    db = _open("list")
    try:
        nodes = load_nodes(db)
    except NodeGraphError as exc:
        _fail("list", exc)
    finally:
        db.close()

    if not nodes:
        typer.echo("[node list] No nodes found.")
        return
    for n in sorted(nodes, key=lambda n: str(n.id)):
        targets = ", ".join(str(c) for c in n.connections) or "-"
        typer.echo(f"  {n.id}  [{n.type}]  {n.title!r}  -> {targets}")


@node_app.command("show")
def node_show(
    node_id: str = typer.Argument(..., help="Node id."),
    as_json: bool = typer.Option(False, "--json", help="Print the node as JSON."),
) -> None:
    """Show one node."""
    db = _open("show")
    try:
        node = load_node(db, node_id)
    except NodeGraphError as exc:
        _fail("show", exc)
    finally:
        db.close()

    if as_json:
        typer.echo(json.dumps(node.to_dict(), indent=2))
        return
    typer.echo(f"{node.title}  [{node.id}]  type={node.type}")
    if node.description:
        typer.echo(f"  {node.description}")
    typer.echo(f"  position    : dx={node.position.get('dx')} dy={node.position.get('dy')}")
    typer.echo(f"  parent      : {node.parent_id if node.parent_id is not None else '-'}")
    typer.echo(f"  connections : {', '.join(str(c) for c in node.connections) or '-'}")
    typer.echo(f"  graphs      : {', '.join(node.graphs) or '-'}")


@node_app.command("tree")
def node_tree() -> None:
    """Render the parent/child hierarchy."""
    db = _open("tree")
    try:
        nodes = load_nodes(db)
    except NodeGraphError as exc:
        _fail("tree", exc)
    finally:
        db.close()

    if not nodes:
        typer.echo("[node tree] No nodes found.")
        return
    typer.echo(render_tree(nodes))


@node_app.command("delete")
def node_delete(node_id: str = typer.Argument(..., help="Node id.")) -> None:
    """Delete a node together with its connections and graph memberships."""
    db = _open("delete")
    try:
        delete_node(db, node_id)
    except NodeGraphError as exc:
        _fail("delete", exc)
    finally:
        db.close()
    typer.echo(f"[node delete] Deleted node: {node_id}")
