"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from nodegraph.api import app

    uvicorn nodegraph.api:app --reload
"""

from nodegraph.api.app import app

__all__ = ["app"]
