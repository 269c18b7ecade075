"""
Agro Store marketplace service.

FastAPI application wiring: structured logging, request ids, Prometheus
metrics, domain exception mapping and the API routers.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import settings
from .core.logging import configure_logging
from .core.metrics import metrics_endpoint, track_request_metrics
from .core.metrics_middleware import PrometheusMiddleware
from .database import init_db
from .dependencies import build_payment_gateway, set_payment_gateway
from .domain.exceptions import (
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ListingLimitExceededException,
    MarketplaceException,
    PaymentFailedException,
    PermissionDeniedException,
    PersistenceException,
    ValidationException,
)
from .routers import (
    cart_router,
    demands_router,
    health_router,
    orders_router,
    products_router,
    subscriptions_router,
    users_router,
)

configure_logging()
logger = structlog.get_logger(__name__)

# exception type -> (status code, error code); most specific first
ERROR_RESPONSES = (
    (ValidationException, 400, "validation_error"),
    (EntityNotFoundException, 404, "not_found"),
    (PermissionDeniedException, 403, "permission_denied"),
    (ListingLimitExceededException, 402, "listing_limit_exceeded"),
    (InvalidStatusTransitionException, 409, "invalid_status_transition"),
    (PaymentFailedException, 402, "payment_failed"),
    (PersistenceException, 503, "persistence_error"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Agro Store service", version=__version__)
    init_db()
    set_payment_gateway(build_payment_gateway())
    logger.info("Agro Store service started")

    yield

    logger.info("Agro Store service stopped")


app = FastAPI(
    title="Agro Store",
    description="Farm-to-market marketplace: listings, carts, orders, demand requests and subscriptions",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With", "X-User-ID", "X-Request-ID"],
    expose_headers=["Content-Length", "X-Request-ID"],
    max_age=600,
)
app.add_middleware(PrometheusMiddleware, track_func=track_request_metrics)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Bind a request id to the log context and echo it back."""
    request_id = request.headers.get("X-Request-ID", f"req-{id(request)}")
    structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(MarketplaceException)
async def marketplace_exception_handler(request: Request, exc: MarketplaceException):
    """Map domain exceptions to JSON error bodies."""
    status_code, error = 500, "internal_error"
    for exc_type, code, name in ERROR_RESPONSES:
        if isinstance(exc, exc_type):
            status_code, error = code, name
            break

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        error=error,
        message=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "message": exc.message,
            "details": exc.details,
        },
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request.headers.get("X-Request-ID"),
        },
    )


app.include_router(health_router.router)
app.include_router(users_router.router)
app.include_router(products_router.router)
app.include_router(cart_router.router)
app.include_router(orders_router.router)
app.include_router(demands_router.router)
app.include_router(subscriptions_router.router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return await metrics_endpoint()


@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": __version__,
        "status": "running",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("agrostore.app:app", host=settings.SERVICE_HOST, port=settings.SERVICE_PORT)
