"""Centralised settings for the nodegraph backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

ID_STRATEGIES = ("generated", "caller-supplied")


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("NODEGRAPH_WORKSPACE", Path.home() / ".nodegraph_data")
        )
    )
    db_file: str = field(
        default_factory=lambda: os.environ.get("NODEGRAPH_DB_FILE", "nodegraph.db")
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / self.db_file

    # ------------------------------------------------------------------
    # Store behaviour
    # ------------------------------------------------------------------
    id_strategy: str = field(
        default_factory=lambda: os.environ.get("NODEGRAPH_ID_STRATEGY", "caller-supplied")
    )
    busy_timeout: float = field(
        default_factory=lambda: float(os.environ.get("DB_BUSY_TIMEOUT", "5.0"))
    )
    auto_init_db: bool = field(
        default_factory=lambda: _env_bool("AUTO_INIT_DB", "true")
    )

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    cors_origins: list[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
    )
    server_host: str = field(
        default_factory=lambda: os.environ.get("SERVER_HOST", "127.0.0.1")
    )
    server_port: int = field(
        default_factory=lambda: int(os.environ.get("SERVER_PORT", "3000"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )

    def __post_init__(self) -> None:
        if self.id_strategy not in ID_STRATEGIES:
            raise ValueError(
                f"NODEGRAPH_ID_STRATEGY must be one of {ID_STRATEGIES}, "
                f"got {self.id_strategy!r}"
            )


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once, using ``settings.log_level`` by default."""
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# Module-level singleton — import this everywhere:
#   from nodegraph.config import settings
settings = Settings()
