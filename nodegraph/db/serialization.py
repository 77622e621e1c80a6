"""JSON text <-> Python value helpers for the structured ``nodes`` columns.

Each column type has one ``dump_*`` / ``load_*`` pair.  Defaults are
substituted only when a value is wholly absent (``None`` on the way in,
``NULL`` on the way out); an empty list or empty string is stored and
returned unchanged.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from nodegraph.db.models import default_position


def dump_list(value: Optional[list[Any]]) -> str:
    """Serialise a reference list (images, documents, …); ``None`` → ``"[]"``."""
    return json.dumps([] if value is None else list(value))


def load_list(text: Optional[str]) -> list[Any]:
    return [] if text is None else json.loads(text)


def dump_position(value: Optional[dict[str, float]]) -> str:
    return json.dumps(default_position() if value is None else value)


def load_position(text: Optional[str]) -> dict[str, float]:
    return default_position() if text is None else json.loads(text)


def dump_json(value: Any) -> Optional[str]:
    """Serialise an arbitrary nullable JSON value (``coordinates``)."""
    return None if value is None else json.dumps(value)


def load_json(text: Optional[str]) -> Any:
    return None if text is None else json.loads(text)


def load_id_list(text: Optional[str]) -> list[Any]:
    """Parse a ``json_group_array`` aggregate, dropping LEFT JOIN nulls.

    Values are returned de-duplicated and sorted so repeated reads of the
    same rows compare equal.
    """
    values = {v for v in load_list(text) if v is not None}
    return sorted(values, key=str)
