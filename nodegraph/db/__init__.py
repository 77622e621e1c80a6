"""Database layer package.

Public re-exports so callers can write::

    from nodegraph.db import QueryExecutor, get_connection, init_db
    from nodegraph.db import nodes
"""

from nodegraph.db.connection import get_connection
from nodegraph.db.executor import QueryExecutor
from nodegraph.db.schema import drop_tables, init_db
from nodegraph.db import nodes

__all__ = ["QueryExecutor", "get_connection", "init_db", "drop_tables", "nodes"]
