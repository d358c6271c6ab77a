#!/usr/bin/env python3
"""
Backend server runner script.

This script starts the FastAPI server with the appropriate configuration.
"""

import os
import sys

import uvicorn

from studyquiz.common.logger import app_logger

logger = app_logger.getChild("scripts.run_server")


def main() -> int:
    """Run the backend server."""
    try:
        # Get configuration from environment or use defaults
        host = os.getenv("HOST", "0.0.0.0")
        port = int(os.getenv("PORT", 8000))
        reload_enabled = os.getenv("RELOAD", "false").lower() == "true"

        logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

        uvicorn.run(
            "studyquiz.main:app",
            host=host,
            port=port,
            reload=reload_enabled,
            log_level="info"
        )
        return 0

    except Exception as e:
        logger.error(f"Error starting server: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
