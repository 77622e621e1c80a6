"""Shared fixtures.

Every test runs against a workspace under ``tmp_path`` so nothing is written
to ``~/.nodegraph_data``, and with the default id strategy regardless of the
caller's environment.
"""

from __future__ import annotations

import pytest

from nodegraph.config import settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "workspace_dir", tmp_path)
    monkeypatch.setattr(settings, "db_file", "nodegraph.db")
    monkeypatch.setattr(settings, "id_strategy", "caller-supplied")
    monkeypatch.setattr(settings, "auto_init_db", True)
    return tmp_path
