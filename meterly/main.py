"""Main module of the FastAPI application.

This module sets up the FastAPI application, the dependency injection
container and the exception handlers that map pipeline errors to HTTP.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from meterly.api.middleware import (
    add_request_id,
    invalid_input_exception_handler,
    log_requests,
    meterly_exception_handler,
    not_found_exception_handler,
    transient_io_exception_handler,
    validation_exception_handler,
)
from meterly.api.v1.api import api_router
from meterly.core.config import settings
from meterly.core.exceptions import (
    InvalidInputError,
    MeterlyException,
    NotFoundException,
    TransientIOError,
)
from meterly.core.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Initializes the DI container on startup and releases its clients on shutdown.
    """
    from meterly.core import container as container_mod
    from meterly.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")

    yield

    await container_mod.container.close()
    container_mod.reset_container()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)

# Order matters: last registered = outermost middleware (processes request first)
app.middleware("http")(log_requests)
app.middleware("http")(add_request_id)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(InvalidInputError)(invalid_input_exception_handler)
app.exception_handler(TransientIOError)(transient_io_exception_handler)
app.exception_handler(MeterlyException)(meterly_exception_handler)
