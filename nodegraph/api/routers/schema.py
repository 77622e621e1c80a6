"""Store administration endpoints.

Routes
------
POST /api/init-db      Create the tables if they do not exist
POST /api/drop-tables  Drop all tables (dependents first)
GET  /api/health       Check that the store answers
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from nodegraph.db.schema import drop_tables, init_db
from nodegraph.errors import RepositoryError, SchemaError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/init-db")
def initialise(request: Request) -> dict[str, str]:
    """Create ``nodes``, ``connections`` and ``node_graphs``."""
    try:
        init_db(request.app.state.db)
    except SchemaError as exc:
        logger.error("Failed to initialize database: %s", exc)
        raise HTTPException(
            status_code=500, detail=f"Failed to initialize database: {exc}"
        ) from exc
    return {"message": "Database initialized successfully"}


@router.post("/drop-tables")
def drop(request: Request) -> dict[str, str]:
    """Drop every table managed by the backend."""
    try:
        drop_tables(request.app.state.db)
    except SchemaError as exc:
        logger.error("Failed to drop tables: %s", exc)
        raise HTTPException(
            status_code=500, detail=f"Failed to drop tables: {exc}"
        ) from exc
    return {"message": "All tables dropped successfully"}


@router.get("/health")
def health(request: Request) -> dict[str, bool]:
    try:
        request.app.state.db.ping()
    except RepositoryError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"ok": True}
