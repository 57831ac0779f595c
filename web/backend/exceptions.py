#!/usr/bin/env python3
"""
Error handlers for the web application.
"""

import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from core.exceptions import (
    PipelineError,
    InvalidIdentifierError,
    NotFoundError,
    UploadRejectedError,
    DecisionValidationError,
    UnknownProfileEntityTypeError,
    CollaboratorError,
)

logger = logging.getLogger(__name__)


def status_code_for(exc: PipelineError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (InvalidIdentifierError, DecisionValidationError, UnknownProfileEntityTypeError)):
        return 400
    if isinstance(exc, UploadRejectedError):
        return 422
    if isinstance(exc, CollaboratorError):
        return 502
    return 500


async def pipeline_exception_handler(
    request: Request,
    exc: PipelineError
) -> JSONResponse:
    """
    Handle pipeline errors.

    Args:
        request: The FastAPI request.
        exc: The pipeline exception.

    Returns:
        JSONResponse with error details.
    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Pipeline error in {request.url.path}: {exc}", exc_info=True)
    else:
        logger.info(f"Rejected request to {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": str(exc),
            "type": exc.__class__.__name__
        }
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """
    Handle FastAPI HTTP exceptions with consistent format.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "type": "HTTPException"
        }
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    """
    logger.exception(f"Unexpected error in {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "type": "InternalError"
        }
    )
