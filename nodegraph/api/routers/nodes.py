"""Node endpoints used by the graph editor.

Routes
------
POST   /api/save-node              Create or update a node (upsert on id)
GET    /api/load-nodes             List all nodes with connections and graphs
GET    /api/node/{node_id}         Fetch a single node
DELETE /api/delete-node/{node_id}  Delete a node and everything referencing it
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from nodegraph.db.models import Node, NodeInput
from nodegraph.db.nodes import delete_node, load_node, load_nodes, save_node
from nodegraph.errors import NotFoundError, RepositoryError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

Key = Union[int, str]
Number = Union[int, float]


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class Position(BaseModel):
    model_config = ConfigDict(extra="allow")

    dx: Number
    dy: Number


class SaveNodeRequest(BaseModel):
    """Body of ``POST /api/save-node``.

    Every field except ``title`` may be omitted; omitted (or null) fields
    are stored with their defaults.  ``title`` is optional here so that a
    missing title is reported as a 400 by the repository rather than a
    schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Key] = None
    title: Optional[str] = None
    description: Optional[str] = None
    images: Optional[list[str]] = None
    audio_files: Optional[list[str]] = Field(default=None, alias="audioFiles")
    documents: Optional[list[str]] = None
    video_links: Optional[list[str]] = Field(default=None, alias="videoLinks")
    coordinates: Any = None
    type: Optional[str] = None
    parent_id: Optional[Key] = None
    position: Optional[Position] = None
    super_node_id: Optional[Key] = Field(default=None, alias="superNodeId")
    connections: Optional[list[Optional[Key]]] = None
    graph_id: Optional[Key] = None

    def to_input(self) -> NodeInput:
        return NodeInput(
            id=self.id,
            title=self.title,
            description=self.description,
            images=self.images,
            audio_files=self.audio_files,
            documents=self.documents,
            video_links=self.video_links,
            coordinates=self.coordinates,
            type=self.type,
            parent_id=self.parent_id,
            position=self.position.model_dump() if self.position is not None else None,
            super_node_id=self.super_node_id,
            connections=self.connections,
            graph_id=None if self.graph_id is None else str(self.graph_id),
        )


class SaveNodeResponse(BaseModel):
    message: str
    nodeId: Key
    created: bool


class NodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Key
    title: str
    description: Optional[str]
    images: list[str]
    audio_files: list[str] = Field(alias="audioFiles")
    documents: list[str]
    video_links: list[str] = Field(alias="videoLinks")
    coordinates: Any
    type: str
    parent_id: Optional[Key]
    position: dict[str, Any]
    super_node_id: Optional[Key] = Field(alias="superNodeId")
    connections: list[Key]
    graphs: list[str]


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _node_response(node: Node) -> dict[str, Any]:
    return node.to_dict()


def store_failure(action: str, exc: RepositoryError) -> HTTPException:
    """Build the 500 response for a store-level error, keeping its kind."""
    logger.error("%s: %s (%s)", action, exc, exc.kind)
    return HTTPException(
        status_code=500,
        detail={"error": exc.kind, "message": f"{action}: {exc}"},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/save-node", response_model=SaveNodeResponse)
def save(body: SaveNodeRequest, request: Request) -> dict[str, Any]:
    """Create or update a node, replacing its outgoing connections."""
    db = request.app.state.db
    try:
        result = save_node(db, body.to_input())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RepositoryError as exc:
        raise store_failure("Failed to save node", exc) from exc
    return {
        "message": "Node saved successfully",
        "nodeId": result.id,
        "created": result.created,
    }


@router.get("/load-nodes", response_model=list[NodeResponse])
def list_all(request: Request) -> list[dict[str, Any]]:
    """Return every node with its connection and graph ids."""
    db = request.app.state.db
    try:
        nodes = load_nodes(db)
    except RepositoryError as exc:
        raise store_failure("Failed to load nodes", exc) from exc
    return [_node_response(n) for n in nodes]


@router.get("/node/{node_id}", response_model=NodeResponse)
def get_one(node_id: str, request: Request) -> dict[str, Any]:
    """Fetch a single node by id."""
    db = request.app.state.db
    try:
        node = load_node(db, node_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RepositoryError as exc:
        raise store_failure("Failed to fetch node", exc) from exc
    return _node_response(node)


@router.delete("/delete-node/{node_id}", response_model=MessageResponse)
def remove(node_id: str, request: Request) -> dict[str, str]:
    """Delete a node, its connections (either direction) and memberships."""
    db = request.app.state.db
    try:
        delete_node(db, node_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RepositoryError as exc:
        raise store_failure("Failed to delete node", exc) from exc
    return {"message": "Node deleted successfully"}
