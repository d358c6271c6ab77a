"""
Main application entry point for the StudyQuiz analytics backend.

Usage:
    - Direct: python -m studyquiz.main
    - ASGI server: uvicorn studyquiz.main:app
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyquiz import __version__
from studyquiz.analytics.service import PerformanceAnalyticsService
from studyquiz.analytics.sql_store import SQLAlchemyAnalyticsStore
from studyquiz.analytics.thresholds import AnalyticsThresholds
from studyquiz.api import install_exception_handlers, main_router
from studyquiz.common.logger import app_logger
from studyquiz.config import settings
from studyquiz.database.init_db import close_database, create_schema, get_session_factory, initialize_database

logger = app_logger.getChild("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database and analytics service, dispose them on shutdown."""
    try:
        await initialize_database(
            database_url=settings.DATABASE_URL,
            echo=settings.SQL_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT
        )
        await create_schema()

        store = SQLAlchemyAnalyticsStore(
            get_session_factory(),
            max_retries=settings.UPSERT_MAX_RETRIES,
            retry_delay=settings.UPSERT_RETRY_DELAY,
        )
        app.state.analytics_service = PerformanceAnalyticsService(
            store, AnalyticsThresholds.from_settings(settings)
        )
        logger.info("Application startup complete")
    except Exception as e:
        logger.error(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        await close_database()
        logger.info("Application shutdown complete")
    except Exception as e:
        logger.error(f"Error during application shutdown: {str(e)}")
        raise


def create_app() -> FastAPI:
    """Create the FastAPI application with routers and exception handlers."""
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Performance tracking and weakness detection for StudyQuiz",
        version=__version__,
        lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(application)
    application.include_router(main_router)

    @application.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to {settings.PROJECT_NAME}"}

    return application


app = create_app()

logger.info(f"Application initialized with {len(app.routes)} routes")

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run("studyquiz.main:app", host=host, port=port, log_level="info")
