"""Parameterised query execution over a shared SQLite connection.

The executor is the only place that sees raw :mod:`sqlite3` exceptions.
Everything above it (schema manager, node repository) works with
:class:`QueryResult` objects and the :mod:`nodegraph.errors` taxonomy.

Usage::

    db = QueryExecutor(get_connection())
    rows = db.execute("SELECT * FROM nodes WHERE id = ?", (node_id,)).rows

    with db.transaction():
        db.execute("DELETE FROM connections WHERE source_id = ?", (node_id,))
        db.execute_many("INSERT INTO connections VALUES (?, ?)", pairs)
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from nodegraph.db.connection import get_connection
from nodegraph.errors import (
    ConstraintError,
    RepositoryError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

# OperationalError messages that mean "the store cannot be reached right now"
# rather than "this statement is wrong".
_UNAVAILABLE_MARKERS = (
    "database is locked",
    "database table is locked",
    "unable to open",
    "disk i/o error",
    "readonly database",
)


@dataclass
class QueryResult:
    rows: list[sqlite3.Row] = field(default_factory=list)
    rowcount: int = -1
    lastrowid: Optional[int] = None


def translate_error(exc: sqlite3.Error) -> RepositoryError:
    """Map a :mod:`sqlite3` exception onto the repository error taxonomy."""
    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, sqlite3.IntegrityError):
        return ConstraintError(message)
    if isinstance(exc, sqlite3.OperationalError) and any(
        marker in lowered for marker in _UNAVAILABLE_MARKERS
    ):
        return StoreUnavailableError(message)
    if isinstance(exc, sqlite3.ProgrammingError) and "closed" in lowered:
        return StoreUnavailableError(message)
    return RepositoryError(message)


def _is_closed(exc: sqlite3.ProgrammingError) -> bool:
    return "closed" in str(exc).lower()


class QueryExecutor:
    """Run statements against one SQLite connection shared by all requests.

    A single :class:`sqlite3.Connection` carries a single transaction, so
    statements and transactions from concurrent request threads are
    serialised with a re-entrant lock.

    When the connection turns out to be closed the executor reopens it via
    ``connect`` (once per call) before giving up with
    :class:`~nodegraph.errors.StoreUnavailableError`.  Reopening is never
    attempted in the middle of a transaction.
    """

    def __init__(
        self,
        conn: Optional[sqlite3.Connection] = None,
        connect: Callable[[], sqlite3.Connection] = get_connection,
    ) -> None:
        self._connect = connect
        self._conn = conn if conn is not None else connect()
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """Execute one statement and return its rows.

        Outside :meth:`transaction` the statement is committed immediately.
        """
        return self._run(lambda conn: conn.execute(sql, params))

    def execute_many(
        self, sql: str, seq_of_params: Iterable[Sequence[Any]]
    ) -> QueryResult:
        """Execute one statement for every parameter tuple."""
        params = list(seq_of_params)
        return self._run(lambda conn: conn.executemany(sql, params))

    def ping(self) -> bool:
        """Return ``True`` if the store answers ``SELECT 1``."""
        row = self.execute("SELECT 1").rows
        return bool(row) and row[0][0] == 1

    @contextmanager
    def transaction(self) -> Iterator[QueryExecutor]:
        """Group statements into one all-or-nothing unit.

        Commits when the block exits normally, rolls back on any exception.
        Nested calls join the outermost transaction.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            self._cursor(lambda conn: conn.execute("BEGIN IMMEDIATE"))
            self._depth = 1
            try:
                yield self
                self._conn.commit()
            except sqlite3.Error as exc:
                self._rollback()
                raise translate_error(exc) from exc
            except BaseException:
                self._rollback()
                raise
            finally:
                self._depth = 0

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self, statement: Callable[[sqlite3.Connection], sqlite3.Cursor]
    ) -> QueryResult:
        with self._lock:
            cursor = self._cursor(statement)
            try:
                rows = cursor.fetchall()
                if not self._depth:
                    self._conn.commit()
            except sqlite3.Error as exc:
                raise self._failed(exc) from exc
            return QueryResult(
                rows=rows, rowcount=cursor.rowcount, lastrowid=cursor.lastrowid
            )

    def _cursor(
        self, statement: Callable[[sqlite3.Connection], sqlite3.Cursor]
    ) -> sqlite3.Cursor:
        try:
            try:
                return statement(self._conn)
            except sqlite3.ProgrammingError as exc:
                if self._depth or not _is_closed(exc):
                    raise
                logger.warning("Store connection was closed; reopening")
                self._conn = self._connect()
                return statement(self._conn)
        except sqlite3.Error as exc:
            raise self._failed(exc) from exc

    def _failed(self, exc: sqlite3.Error) -> RepositoryError:
        error = translate_error(exc)
        logger.warning("Store error (%s): %s", error.kind, error)
        if not self._depth:
            self._discard_pending()
        return error

    def _discard_pending(self) -> None:
        """Roll back the implicit transaction a failed statement leaves open."""
        try:
            if self._conn.in_transaction:
                self._conn.rollback()
        except sqlite3.ProgrammingError:
            # Closed connection: nothing is pending.
            return

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error:
            logger.exception("Rollback failed")
