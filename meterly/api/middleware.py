"""Middleware and exception handlers for the FastAPI application.

Exception handlers map the pipeline's error families to HTTP:

- NotFoundException → 404
- InvalidInputError → 400
- TransientIOError → 503 (the caller may retry)
- request validation errors → 422
"""

import time
import uuid

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from meterly.core.exceptions import (
    InvalidInputError,
    MeterlyException,
    NotFoundException,
    TransientIOError,
    unpack_validation_error,
)
from meterly.core.logging import logger


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Tag the request with a fresh id and echo it in ``X-Request-ID``."""
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Log method, path, status and duration of every request.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The rest of the middleware chain.

    Returns:
    -------
        Response: The downstream response, unchanged.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", None)).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Exception handler for request and model validation errors.

    Returns:
    -------
        JSONResponse: 422 with one ``{location: message}`` entry per error, e.g.
            {"errors": [{"body.name": "Value error, Name is required"}]}

    """
    return JSONResponse(status_code=422, content=unpack_validation_error(exc))


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def invalid_input_exception_handler(
    request: Request, exc: InvalidInputError
) -> JSONResponse:
    """Exception handler for InvalidInputError.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def transient_io_exception_handler(
    request: Request, exc: TransientIOError
) -> JSONResponse:
    """Exception handler for TransientIOError.

    Returns:
    -------
        JSONResponse: A 503 Service Unavailable status response.

    """
    logger.warning(f"Transient failure while handling {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def meterly_exception_handler(request: Request, exc: MeterlyException) -> JSONResponse:
    """Fallback for MeterlyException types without a dedicated handler."""
    logger.error(f"Unhandled {exc.__class__.__name__}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})
