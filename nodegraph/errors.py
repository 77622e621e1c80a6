"""Exception hierarchy shared by the DB layer, the HTTP API and the CLI.

::

    NodeGraphError
    ├── ValidationError        bad or missing input, nothing written
    ├── NotFoundError          referenced node id does not exist
    ├── SchemaError            table creation / teardown failed
    └── RepositoryError        any other store-level failure
        ├── ConstraintError        foreign-key or uniqueness violation
        └── StoreUnavailableError  store unreachable, locked or closed
"""

from __future__ import annotations


class NodeGraphError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(NodeGraphError):
    pass


class NotFoundError(NodeGraphError):
    def __init__(self, node_id: object) -> None:
        super().__init__(f"Node not found: {node_id!r}")
        self.node_id = node_id


class RepositoryError(NodeGraphError):
    """A statement failed inside the store."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConstraintError(RepositoryError):
    pass


class StoreUnavailableError(RepositoryError):
    pass


class SchemaError(NodeGraphError):
    """Creating or dropping a table failed.

    ``step`` names the table whose statement failed; ``cause`` is the
    underlying store error.
    """

    def __init__(self, step: str, cause: Exception) -> None:
        super().__init__(f"Schema operation failed at {step!r}: {cause}")
        self.step = step
        self.cause = cause
