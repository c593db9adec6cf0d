"""Packstore API main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from packstore.api.cart import router as cart_router
from packstore.api.checkout import router as checkout_router
from packstore.api.health import router as health_router
from packstore.api.middleware import setup_middleware
from packstore.api.pricing import router as pricing_router
from packstore.api.shipping import router as shipping_router
from packstore.application.order_poller import get_poller_registry
from packstore.domain.exceptions import (
    DomainError,
    ProductNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from packstore.infrastructure.catalog_store import get_catalog
from packstore.infrastructure.checkout_client import close_checkout_client
from packstore.infrastructure.config import settings
from packstore.infrastructure.database import dispose_engine
from packstore.infrastructure.logging_config import configure_logging

configure_logging(settings.log_level)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    logger.info(
        "Starting Packstore API",
        version=settings.api_version,
        debug=settings.debug,
        cart_store=settings.cart_store_backend,
    )

    catalog = get_catalog()
    logger.info("Catalog ready", product_count=len(catalog))

    yield

    # Shutdown
    logger.info("Shutting down Packstore API")
    get_poller_registry().cancel_all()
    await close_checkout_client()
    if settings.cart_store_backend == "database":
        await dispose_engine()


app = FastAPI(
    title="Packstore API",
    description="Pricing, cart and order materialization backend for a packaging storefront",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(cart_router)
app.include_router(pricing_router)
app.include_router(shipping_router)
app.include_router(checkout_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: object,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to HTTP statuses."""
    if isinstance(exc, ValidationError):
        status_code = 422
    elif isinstance(exc, (ProductNotFoundError, VariantNotFoundError)):
        status_code = 404
    else:
        status_code = 400

    logger.info(
        "Domain error",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    # CamelCase class name -> UPPER_SNAKE error code
    name = type(exc).__name__.removesuffix("Error")
    error_code = "".join(f"_{c}" if c.isupper() else c for c in name).lstrip("_").upper()
    return _error_response(request, status_code, error_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body validation errors with consistent format."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return _error_response(request, 422, "VALIDATION_ERROR", "Invalid request", details)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []
    return _error_response(request, exc.status_code, error_code, message, details)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return _error_response(
        request, 500, "INTERNAL_ERROR", "An internal error occurred", []
    )
