"""Dataclass models representing DB rows and repository inputs.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union

NodeId = Union[int, str]

DEFAULT_NODE_TYPE = "normal"


def default_position() -> dict[str, float]:
    return {"dx": 0, "dy": 0}


@dataclass
class Node:
    id: NodeId
    title: str
    description: Optional[str] = None
    images: list[str] = field(default_factory=list)
    audio_files: list[str] = field(default_factory=list)
    documents: list[str] = field(default_factory=list)
    video_links: list[str] = field(default_factory=list)
    coordinates: Any = None
    type: str = DEFAULT_NODE_TYPE
    parent_id: Optional[NodeId] = None
    position: dict[str, float] = field(default_factory=default_position)
    super_node_id: Optional[NodeId] = None

    # Derived on read, never stored on the node row.
    connections: list[NodeId] = field(default_factory=list)
    graphs: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class NodeInput:
    """What a caller hands to :func:`~nodegraph.db.nodes.save_node`.

    ``None`` means "absent": the documented default is stored instead.
    Present-but-empty values (``[]``, ``""``) are stored as given.
    """

    title: Optional[str]
    id: Optional[NodeId] = None
    description: Optional[str] = None
    images: Optional[list[str]] = None
    audio_files: Optional[list[str]] = None
    documents: Optional[list[str]] = None
    video_links: Optional[list[str]] = None
    coordinates: Any = None
    type: Optional[str] = None
    parent_id: Optional[NodeId] = None
    position: Optional[dict[str, float]] = None
    super_node_id: Optional[NodeId] = None
    connections: Optional[list[Optional[NodeId]]] = None
    graph_id: Optional[str] = None


@dataclass
class SaveResult:
    id: NodeId
    created: bool
