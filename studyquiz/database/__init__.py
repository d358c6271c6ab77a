"""
Database Package

Declarative base, async engine lifecycle and migrations.
"""

from studyquiz.database.base import Base, metadata
from studyquiz.database.init_db import (
    close_database,
    create_schema,
    get_engine,
    get_session_factory,
    initialize_database,
    run_migrations,
)

__all__ = [
    "Base",
    "metadata",
    "close_database",
    "create_schema",
    "get_engine",
    "get_session_factory",
    "initialize_database",
    "run_migrations",
]
