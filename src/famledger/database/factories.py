"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Any, Optional

from famledger.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV_VAR = "FAMLEDGER_DB_PATH"


def resolve_database_path(
    database_path: Optional[str] = None, config: Optional[dict[str, Any]] = None
) -> str:
    """Resolve which SQLite file to use.

    Order: explicit path, FAMLEDGER_DB_PATH, ``database.path`` from config,
    then ~/.famledger/famledger.db.
    """
    if database_path is None:
        database_path = os.environ.get(DB_PATH_ENV_VAR)

    if database_path is None and config is not None:
        database_path = (config.get("database") or {}).get("path")

    if database_path is None:
        db_dir = Path.home() / ".famledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "famledger.db")

    return str(Path(database_path).expanduser())


def create_sqlite_database(
    database_path: Optional[str] = None, config: Optional[dict[str, Any]] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, falls back to
            FAMLEDGER_DB_PATH, the config file, then ~/.famledger/famledger.db
        config: Loaded configuration dictionary (optional)

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    resolved = resolve_database_path(database_path, config)
    db = SQLAlchemyDatabase(f"sqlite:///{resolved}")
    db.database_path = resolved
    return db
