"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection, wraps it in a
:class:`~nodegraph.db.executor.QueryExecutor` (shared across all requests
via ``request.app.state.db``) and, unless ``AUTO_INIT_DB`` is off, creates
the schema.  On shutdown it closes the connection cleanly.

Routers
-------
Both endpoint groups are mounted under ``/api``:

    /api/save-node, /api/load-nodes, /api/node/{id}, /api/delete-node/{id}
    /api/init-db, /api/drop-tables, /api/health
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nodegraph import __version__
from nodegraph.config import configure_logging, settings
from nodegraph.db import QueryExecutor, get_connection, init_db

from nodegraph.api.routers import nodes as nodes_router
from nodegraph.api.routers import schema as schema_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging()
    db = QueryExecutor(get_connection())
    if settings.auto_init_db:
        init_db(db)
    app.state.db = db
    logger.info("Store opened at %s", settings.db_path)
    try:
        yield
    finally:
        db.close()


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    response = await call_next(request)
    logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
    return response


async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are client errors (400), like a missing title."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="nodegraph API",
        description=(
            "Persistence backend for a node-graph editor: nodes with media "
            "references, positions, tree parents, directed connections and "
            "graph memberships."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    app.add_exception_handler(RequestValidationError, bad_request)  # type: ignore[arg-type]

    app.include_router(schema_router.router, prefix="/api", tags=["schema"])
    app.include_router(nodes_router.router, prefix="/api", tags=["nodes"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn nodegraph.api.app:app --reload
app = create_app()
