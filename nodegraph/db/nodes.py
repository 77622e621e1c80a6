"""Save / load / delete operations for nodes and their derived relations.

A node row lives in ``nodes``; its outgoing edges live in ``connections``
and its graph memberships in ``node_graphs``.  On read the two relations are
folded back onto :class:`~nodegraph.db.models.Node` as ``connections`` and
``graphs``.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Any, Optional

from nodegraph.config import settings
from nodegraph.db.executor import QueryExecutor
from nodegraph.db.models import (
    DEFAULT_NODE_TYPE,
    Node,
    NodeId,
    NodeInput,
    SaveResult,
)
from nodegraph.db.serialization import (
    dump_json,
    dump_list,
    dump_position,
    load_id_list,
    load_json,
    load_list,
    load_position,
)
from nodegraph.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# SQLite INTEGER keys are signed 64-bit.
_MIN_KEY = -(2**63)
_MAX_KEY = 2**63 - 1

_DATA_COLUMNS = (
    "title",
    "description",
    "images",
    "audioFiles",
    "documents",
    "videoLinks",
    "coordinates",
    "type",
    "parent_id",
    "position",
    "superNodeId",
)

_INSERT_SQL = (
    f"INSERT INTO nodes ({', '.join(_DATA_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _DATA_COLUMNS)})"
)

_UPSERT_SQL = (
    f"INSERT INTO nodes (id, {', '.join(_DATA_COLUMNS)}) "
    f"VALUES (?, {', '.join('?' for _ in _DATA_COLUMNS)}) "
    "ON CONFLICT(id) DO UPDATE SET "
    + ", ".join(f"{col} = excluded.{col}" for col in _DATA_COLUMNS)
)

_SELECT_SQL = """
    SELECT n.*,
           json_group_array(DISTINCT c.target_id) AS connection_ids,
           json_group_array(DISTINCT g.graph_id)  AS graph_ids
    FROM   nodes AS n
    LEFT JOIN connections AS c ON c.source_id = n.id
    LEFT JOIN node_graphs AS g ON g.node_id = n.id
    {where}
    GROUP BY n.id
"""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_node(row: sqlite3.Row) -> Node:
    return Node(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        images=load_list(row["images"]),
        audio_files=load_list(row["audioFiles"]),
        documents=load_list(row["documents"]),
        video_links=load_list(row["videoLinks"]),
        coordinates=load_json(row["coordinates"]),
        type=row["type"],
        parent_id=row["parent_id"],
        position=load_position(row["position"]),
        super_node_id=row["superNodeId"],
        connections=load_id_list(row["connection_ids"]),
        graphs=load_id_list(row["graph_ids"]),
    )


def _coerce_id(value: Any, id_strategy: str, field_name: str) -> NodeId:
    """Convert a caller-provided key to the column type of the strategy.

    Raises:
        ValidationError: ``value`` cannot be a key under ``id_strategy``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{field_name} must be a string or integer, got {value!r}")
    if id_strategy == "generated":
        try:
            key = value if isinstance(value, int) else int(value.strip())
        except ValueError:
            raise ValidationError(
                f"{field_name} must be an integer id, got {value!r}"
            ) from None
        if not _MIN_KEY <= key <= _MAX_KEY:
            raise ValidationError(f"{field_name} is out of range: {value!r}")
        return key
    return str(value)


def _optional_id(value: Any, id_strategy: str, field_name: str) -> Optional[NodeId]:
    if value is None or value == "":
        return None
    return _coerce_id(value, id_strategy, field_name)


def _lookup_id(value: Any, id_strategy: str) -> NodeId:
    """Like :func:`_coerce_id`, but a key that cannot exist is "not found"."""
    try:
        return _coerce_id(value, id_strategy, "id")
    except ValidationError:
        raise NotFoundError(value) from None


def _connection_targets(
    connections: Optional[list[Any]], id_strategy: str
) -> list[NodeId]:
    """Drop null/empty entries and duplicates, keeping first-seen order."""
    targets: dict[NodeId, None] = {}
    for target in connections or []:
        if target is None or target == "":
            continue
        targets[_coerce_id(target, id_strategy, "connections")] = None
    return list(targets)


def _node_values(node: NodeInput, parent_id, super_node_id) -> tuple[Any, ...]:
    return (
        node.title,
        node.description,
        dump_list(node.images),
        dump_list(node.audio_files),
        dump_list(node.documents),
        dump_list(node.video_links),
        dump_json(node.coordinates),
        DEFAULT_NODE_TYPE if node.type is None else node.type,
        parent_id,
        dump_position(node.position),
        super_node_id,
    )


def _exists(db: QueryExecutor, node_id: NodeId) -> bool:
    return bool(db.execute("SELECT 1 FROM nodes WHERE id = ?", (node_id,)).rows)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def save_node(
    db: QueryExecutor,
    node: NodeInput,
    id_strategy: Optional[str] = None,
) -> SaveResult:
    """Insert or update a node, replace its outgoing connections and record
    its graph membership.

    Steps, all inside one transaction:

    1. Upsert the ``nodes`` row keyed on ``node.id`` (every column is
       overwritten).  Without an id the store assigns one (``generated``) or
       a UUID4 string is used (``caller-supplied``).
    2. Delete every connection whose source is this node, then insert one
       row per target in ``node.connections``.
    3. When ``node.graph_id`` is set, add the ``(node, graph)`` membership if
       it is not already present.  Other memberships are left alone.

    Args:
        db: Executor bound to the store.
        node: The validated payload.  ``None`` fields take their defaults.
        id_strategy: Overrides ``settings.id_strategy``.

    Returns:
        The resolved id and whether a new row was created.

    Raises:
        ValidationError: Missing/empty title or an id of the wrong type.
            Raised before anything is written.
        ConstraintError: A parent, super node or connection target does not
            exist.  The whole save is rolled back.
        StoreUnavailableError: The store could not be reached.
    """
    strategy = id_strategy or settings.id_strategy

    if not node.title:
        raise ValidationError("Missing required field (title)")

    node_id = _optional_id(node.id, strategy, "id")
    parent_id = _optional_id(node.parent_id, strategy, "parent_id")
    super_node_id = _optional_id(node.super_node_id, strategy, "superNodeId")
    targets = _connection_targets(node.connections, strategy)
    values = _node_values(node, parent_id, super_node_id)

    if node_id is None and strategy == "caller-supplied":
        node_id = str(uuid.uuid4())

    with db.transaction():
        if node_id is None:
            node_id = db.execute(_INSERT_SQL, values).lastrowid
            created = True
        else:
            created = not _exists(db, node_id)
            db.execute(_UPSERT_SQL, (node_id, *values))

        db.execute("DELETE FROM connections WHERE source_id = ?", (node_id,))
        if targets:
            db.execute_many(
                "INSERT INTO connections (source_id, target_id) VALUES (?, ?)",
                [(node_id, target) for target in targets],
            )

        if node.graph_id:
            db.execute(
                "INSERT OR IGNORE INTO node_graphs (node_id, graph_id) VALUES (?, ?)",
                (node_id, node.graph_id),
            )

    logger.info(
        "%s node %r (%d connections, graph=%r)",
        "Created" if created else "Updated",
        node_id,
        len(targets),
        node.graph_id,
    )
    return SaveResult(id=node_id, created=created)  # type: ignore[arg-type]


def load_nodes(db: QueryExecutor) -> list[Node]:
    """Return every node with its outgoing connection ids and graph ids.

    No particular row order is guaranteed.
    """
    rows = db.execute(_SELECT_SQL.format(where="")).rows
    return [_row_to_node(r) for r in rows]


def load_node(
    db: QueryExecutor,
    node_id: Any,
    id_strategy: Optional[str] = None,
) -> Node:
    """Fetch a single node by id.

    Raises:
        NotFoundError: No node has this id.
    """
    key = _lookup_id(node_id, id_strategy or settings.id_strategy)
    rows = db.execute(_SELECT_SQL.format(where="WHERE n.id = ?"), (key,)).rows
    if not rows:
        raise NotFoundError(node_id)
    return _row_to_node(rows[0])


def delete_node(
    db: QueryExecutor,
    node_id: Any,
    id_strategy: Optional[str] = None,
) -> None:
    """Delete a node together with every row that references it.

    Connections where the node is source **or** target go first, then its
    graph memberships, then the node row.  Children pointing at it through
    ``parent_id`` / ``superNodeId`` are detached by the store
    (``ON DELETE SET NULL``).

    Raises:
        NotFoundError: No node has this id.  Nothing is deleted.
    """
    key = _lookup_id(node_id, id_strategy or settings.id_strategy)
    with db.transaction():
        if not _exists(db, key):
            raise NotFoundError(node_id)
        db.execute(
            "DELETE FROM connections WHERE source_id = ? OR target_id = ?",
            (key, key),
        )
        db.execute("DELETE FROM node_graphs WHERE node_id = ?", (key,))
        db.execute("DELETE FROM nodes WHERE id = ?", (key,))
    logger.info("Deleted node %r", key)
