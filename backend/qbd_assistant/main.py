"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qbd_assistant.api.router import api_router
from qbd_assistant.core.config import ConfigurationMissingError, settings
from qbd_assistant.core.errors import (
    AppException,
    ErrorCode,
    ValidationError,
    create_error_response,
    validation_error_fields,
)
from qbd_assistant.core.logging import get_logger, setup_logging

# Set up logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"Debug mode: {settings.debug}")

    try:
        config = settings.conductor_config()
        logger.info(f"Conductor end user: {config.end_user_id}")
        if not config.adjustment_account_id:
            logger.warning(
                "QUICKBOOKS_INVENTORY_ADJUSTMENT_ACCOUNT_ID is not set; "
                "quantity changes will be refused"
            )
    except ConfigurationMissingError as e:
        logger.warning(f"QuickBooks Desktop endpoints are unavailable: {e}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title="QuickBooks Desktop Inventory Assistant API",
    description="Natural-language inventory management and customer CRUD for QuickBooks Desktop",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render application errors as the standard envelope."""
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 with the offending field paths."""
    error = ValidationError(validation_error_fields(exc.errors()))
    logger.info(f"Rejected {request.method} {request.url.path}: {error.detail.get('details')}")
    return JSONResponse(status_code=error.status_code, content=error.detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected failures as a 500 envelope without internal detail."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    error = create_error_response(ErrorCode.INTERNAL_ERROR)
    return JSONResponse(status_code=500, content=error.to_body())


# Include API router
app.include_router(api_router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "0.1.0",
        "debug": settings.debug,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.app_name,
        "docs": "/api/docs",
        "api": "/api/v1",
    }
