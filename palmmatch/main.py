import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

# Import after dotenv is loaded
from palmmatch.core.config import settings, validate_config
from palmmatch.core.database import create_all_tables, dispose_engine, is_configured
from palmmatch.core.logging import configure_logging
from palmmatch.core.middleware.request_id import RequestIdMiddleware
from palmmatch.core.middleware.metrics import MetricsMiddleware
from palmmatch.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from palmmatch.api import codes, compatibility, invitations, matches, health, metrics

configure_logging(settings.ENV, settings.LOG_LEVEL)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("palmmatch")
    logger.info("Starting palmmatch...")
    if is_configured():
        create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping palmmatch...")
        dispose_engine()


app = FastAPI(title="palmmatch - Compatibility Matching Engine", lifespan=lifespan)

# Middlewares
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(codes.router)
app.include_router(compatibility.router)
app.include_router(invitations.router)
app.include_router(matches.router)
app.include_router(health.root_router)
app.include_router(metrics.router)
