"""
Central API router and exception handlers for StudyQuiz.

This module provides:
- A central router that includes every feature router under the API prefix
- Handlers turning StudyQuiz exceptions and request validation errors into
  the standard error envelope
"""

from typing import Dict

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studyquiz.analytics.router import router as analytics_router
from studyquiz.common.error_handling import error_response, status_code_for
from studyquiz.common.exceptions import BaseError
from studyquiz.common.logger import app_logger
from studyquiz.config import settings

logger = app_logger.getChild("api")

main_router = APIRouter()

# Feature routers registered on the main router
registered_modules: Dict[str, APIRouter] = {}


def register_module(name: str, router: APIRouter) -> None:
    """
    Register a feature router under the versioned API prefix.

    Args:
        name: Name of the feature module
        router: FastAPI router of the module
    """
    if name in registered_modules:
        logger.warning(f"Module '{name}' already registered, overwriting")

    main_router.include_router(router, prefix=settings.API_V1_STR)
    registered_modules[name] = router
    logger.info(f"Registered module: {name} with {len(router.routes)} routes")


async def studyquiz_exception_handler(request: Request, exc: BaseError) -> JSONResponse:
    """Return the error envelope for StudyQuiz exceptions."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status_code, content=error_response(exc))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request schema errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A JSON response with error details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": list(error.get("loc", [])),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "code": "request_validation_error",
            "message": "Validation error",
            "details": error_details
        }
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseError, studyquiz_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)


register_module("analytics", analytics_router)
