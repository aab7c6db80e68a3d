"""
Main application entry point.

This module initializes the FastAPI application and includes all routers.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from allocation_engine.core.config import settings
from allocation_engine.core.deps import close_service_clients
from allocation_engine.core.exceptions import AllocationError
from allocation_engine.core.logging import logger
from allocation_engine.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from allocation_engine.db.session import init_models
from allocation_engine.routers.allocations import router as allocations_router
from allocation_engine.routers.health import router as health_router


app = FastAPI(
    title=settings.api.title,
    description=settings.api.description,
    version=settings.api.version,
    debug=settings.debug,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_urls,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


@app.exception_handler(AllocationError)
async def allocation_error_handler(request: Request, exc: AllocationError) -> JSONResponse:
    """Translate service errors into JSON responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(
    health_router,
    prefix="/api/health",
    tags=["health"],
)
app.include_router(
    allocations_router,
    prefix="/api/budget-allocations",
    tags=["budget-allocations"],
)


@app.on_event("startup")
async def startup_event():
    """Actions to run on application startup."""
    logger.info("Starting Budget Allocation API")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Database URL: {settings.database.url[:20]}...")

    if settings.database.is_sqlite or settings.debug:
        await init_models()

    # === Redis Initialization ===
    from allocation_engine.core.cache import redis_client, check_redis_connection

    if redis_client is None:
        logger.warning("Redis is disabled; allocation reads will not be cached.")
    else:
        try:
            if await check_redis_connection():
                logger.info("Redis connection established successfully")
            else:
                logger.error("Failed to connect to Redis. Reads will go to the database.")
        except Exception as e:
            logger.error(f"Unexpected error during Redis connection check: {e}")

    logger.info(f"API Docs available at: http://{settings.api.host}:{settings.api.port}/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Actions to run on application shutdown."""
    logger.info("Shutting down Budget Allocation API")
    await close_service_clients()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Budget Allocation API",
        "version": settings.api.version,
        "docs": "/docs",
    }
