"""
odata_expand.core.config - Service configuration
=================================================

Environment-driven configuration for the Persons OData service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./persons.db"


def load_env_file(path: Optional[Path] = None) -> Optional[Path]:
    """
    Load a ``.env`` file into the process environment.

    Looks in the current directory first, then next to the project root.
    Variables already present in the environment win.

    Returns
    -------
    Path or None
        The file that was loaded, if any
    """
    candidates = [path] if path else [
        Path.cwd() / ".env",
        Path(__file__).resolve().parent.parent.parent / ".env",
    ]
    for env_path in candidates:
        if env_path is not None and env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServiceConfig:
    """
    Runtime configuration for the Persons service.

    Parameters
    ----------
    database_url : str
        SQLAlchemy async database URL
    route_prefix : str
        OData service root segment, e.g. "odata" for ``/odata/Persons``
    max_page_size : int
        Upper bound for ``$top`` and the server-driven page size
    sql_echo : bool
        Echo SQL statements through the ``sqlalchemy.engine`` logger
    cors_origins : list of str
        Allowed CORS origins
    host, port, reload, log_level
        uvicorn settings used by ``python -m odata_expand.api``

    Examples
    --------
    >>> cfg = ServiceConfig(database_url="sqlite+aiosqlite:///:memory:")
    >>> cfg = ServiceConfig.from_env()  # reads ODATA_* env vars
    """
    database_url: str = DEFAULT_DATABASE_URL
    route_prefix: str = "odata"
    max_page_size: int = 100
    sql_echo: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 5050
    reload: bool = False
    log_level: str = "info"

    def __post_init__(self) -> None:
        self.route_prefix = self.route_prefix.strip("/")
        if self.max_page_size < 1:
            raise ValueError("max_page_size must be a positive integer")

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build a configuration from ``ODATA_*`` environment variables."""
        origins = [
            o.strip()
            for o in os.environ.get("ODATA_CORS_ORIGINS", "*").split(",")
            if o.strip()
        ]
        return cls(
            database_url=os.environ.get("ODATA_DATABASE_URL", DEFAULT_DATABASE_URL),
            route_prefix=os.environ.get("ODATA_ROUTE_PREFIX", "odata"),
            max_page_size=int(os.environ.get("ODATA_MAX_PAGE_SIZE", "100")),
            sql_echo=_env_bool("ODATA_SQL_ECHO", False),
            cors_origins=origins,
            host=os.environ.get("ODATA_HOST", "0.0.0.0"),
            port=int(os.environ.get("ODATA_PORT", "5050")),
            reload=_env_bool("ODATA_RELOAD", False),
            log_level=os.environ.get("ODATA_LOG_LEVEL", "info"),
        )
