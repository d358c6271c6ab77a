"""
Tests for database initialization and migrations.
"""

import sqlite3

import pytest

from studyquiz.common.exceptions import ConfigurationError
from studyquiz.database import init_db

TABLES = {"quiz_results", "performance_analytics", "performance_breakdowns"}


def table_names(path):
    with sqlite3.connect(path) as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {name for (name,) in rows}


def test_session_factory_requires_initialization():
    with pytest.raises(ConfigurationError):
        init_db.get_session_factory()


@pytest.mark.asyncio
async def test_initialize_create_and_close(tmp_path):
    path = tmp_path / "init.db"

    await init_db.initialize_database(database_url=f"sqlite+aiosqlite:///{path}")
    try:
        assert init_db.get_session_factory() is not None
        await init_db.create_schema()
    finally:
        await init_db.close_database()

    assert TABLES <= table_names(path)
    with pytest.raises(ConfigurationError):
        init_db.get_engine()


def test_migrations_create_the_schema(tmp_path):
    path = tmp_path / "migrated.db"

    init_db.run_migrations(f"sqlite+aiosqlite:///{path}")

    assert TABLES | {"alembic_version"} <= table_names(path)


def test_migrations_add_the_buffer_bound_columns(tmp_path):
    path = tmp_path / "migrated.db"

    init_db.run_migrations(f"sqlite+aiosqlite:///{path}")

    with sqlite3.connect(path) as conn:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(performance_analytics)")}
    assert {"buffer_newest_at", "buffer_oldest_at"} <= columns
