"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from pocketplan.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks POCKETPLAN_DB_PATH
            environment variable, then defaults to ~/.pocketplan/pocketplan.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("POCKETPLAN_DB_PATH")

    if database_path is None:
        db_dir = Path.home() / ".pocketplan"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "pocketplan.db")

    database = SQLAlchemyDatabase(f"sqlite:///{database_path}")
    database.database_path = database_path
    return database


def create_database(database_url: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a database from a SQLAlchemy URL.

    Falls back to the SQLite file resolution of ``create_sqlite_database``
    when no URL is given.
    """
    if database_url is None:
        database_url = os.environ.get("POCKETPLAN_DATABASE_URL")
    if database_url is None:
        return create_sqlite_database()
    return SQLAlchemyDatabase(database_url)
