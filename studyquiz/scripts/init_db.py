#!/usr/bin/env python3
"""
Database initialization script.

Upgrades the configured database to the latest migration. With
``--create-all`` the tables are created directly from the ORM models
instead, which is convenient for throwaway SQLite files.

Usage:
    python -m studyquiz.scripts.init_db [--database-url URL] [--create-all]
"""

import argparse
import asyncio
import sys

from studyquiz.common.logger import app_logger
from studyquiz.config import settings
from studyquiz.database.init_db import close_database, create_schema, initialize_database, run_migrations

logger = app_logger.getChild("scripts.init_db")


async def create_all(database_url: str) -> None:
    """Create the tables from the ORM models."""
    await initialize_database(database_url=database_url)
    try:
        await create_schema()
    finally:
        await close_database()


def main(argv=None) -> int:
    """Initialize the database."""
    parser = argparse.ArgumentParser(description="Initialize the StudyQuiz database")
    parser.add_argument("--database-url", default=settings.DATABASE_URL, help="Database connection URL")
    parser.add_argument("--create-all", action="store_true", help="Create tables without alembic")
    args = parser.parse_args(argv)

    try:
        if args.create_all:
            asyncio.run(create_all(args.database_url))
        else:
            run_migrations(args.database_url)
        logger.info("Database initialized successfully")
        return 0
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
