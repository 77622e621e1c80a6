"""Creation and teardown of the ``nodes``, ``connections`` and ``node_graphs`` tables.

``init_db(db)`` is idempotent — safe to call on an existing database.
``drop_tables(db)`` is idempotent too: every drop is ``IF EXISTS``.

Statements run one at a time in dependency order (``nodes`` first on create,
last on drop) so a failure part-way through never leaves a dependent table
pointing at a missing parent.
"""

from __future__ import annotations

import logging
from typing import Optional

from nodegraph.config import settings
from nodegraph.db.executor import QueryExecutor
from nodegraph.errors import RepositoryError, SchemaError

logger = logging.getLogger(__name__)

MANAGED_TABLES = ("nodes", "connections", "node_graphs")

# Drop order: dependents before the table they reference.
_DROP_ORDER = ("connections", "node_graphs", "nodes")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _key_type(id_strategy: str) -> str:
    return "INTEGER" if id_strategy == "generated" else "TEXT"


def _create_statements(id_strategy: str) -> list[tuple[str, str]]:
    key = _key_type(id_strategy)
    if id_strategy == "generated":
        id_column = "id INTEGER PRIMARY KEY AUTOINCREMENT"
    else:
        id_column = "id TEXT PRIMARY KEY NOT NULL"

    return [
        (
            "nodes",
            f"""
            CREATE TABLE IF NOT EXISTS nodes (
                {id_column},
                title        TEXT NOT NULL,
                description  TEXT,
                images       TEXT,
                audioFiles   TEXT,
                documents    TEXT,
                videoLinks   TEXT,
                coordinates  TEXT,
                type         TEXT NOT NULL DEFAULT 'normal',
                parent_id    {key} REFERENCES nodes(id) ON DELETE SET NULL,
                position     TEXT,
                superNodeId  {key} REFERENCES nodes(id) ON DELETE SET NULL
            )
            """,
        ),
        (
            "connections",
            f"""
            CREATE TABLE IF NOT EXISTS connections (
                source_id  {key} NOT NULL REFERENCES nodes(id),
                target_id  {key} NOT NULL REFERENCES nodes(id),
                PRIMARY KEY (source_id, target_id)
            )
            """,
        ),
        (
            "node_graphs",
            f"""
            CREATE TABLE IF NOT EXISTS node_graphs (
                node_id   {key} NOT NULL REFERENCES nodes(id),
                graph_id  TEXT NOT NULL,
                PRIMARY KEY (node_id, graph_id)
            )
            """,
        ),
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def init_db(db: QueryExecutor, id_strategy: Optional[str] = None) -> None:
    """Create the three tables if they do not exist.

    Args:
        db: Executor bound to the target store.
        id_strategy: ``"generated"`` (integer autoincrement keys) or
            ``"caller-supplied"`` (text keys).  Defaults to
            ``settings.id_strategy``.  Only affects tables that do not
            exist yet.

    Raises:
        SchemaError: A ``CREATE TABLE`` statement failed.
    """
    strategy = id_strategy or settings.id_strategy
    for table, ddl in _create_statements(strategy):
        try:
            db.execute(ddl)
        except RepositoryError as exc:
            raise SchemaError(table, exc) from exc
    logger.info("Schema ready (id strategy: %s)", strategy)


def drop_tables(db: QueryExecutor) -> None:
    """Drop ``connections``, ``node_graphs`` and ``nodes``, in that order.

    Raises:
        SchemaError: A ``DROP TABLE`` statement failed.
    """
    for table in _DROP_ORDER:
        try:
            db.execute(f"DROP TABLE IF EXISTS {table}")
        except RepositoryError as exc:
            raise SchemaError(table, exc) from exc
    logger.info("Dropped tables: %s", ", ".join(_DROP_ORDER))


def list_tables(db: QueryExecutor) -> list[str]:
    """Return the managed tables currently present, in creation order."""
    rows = db.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table'"
    ).rows
    present = {r["name"] for r in rows}
    return [t for t in MANAGED_TABLES if t in present]
