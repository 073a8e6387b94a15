"""
Amber Drive Admin - Main Application

FastAPI application serving the back-office of a luxury car rental:
- Car catalog
- Quotes
- AI car search
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from amber_drive.config.settings import settings
from amber_drive.database.base import close_db, init_db
from amber_drive.exceptions import AmberDriveError, Unauthorized, ValidationError
from amber_drive.utils.logging import get_logger, request_logger, setup_logging

# Import routers
from amber_drive.api.routes import ai_search, auth, cars, quotes, stats

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    logger.info("Starting Amber Drive Admin", version=settings.app_version)

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down Amber Drive Admin")
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="""
## Amber Drive Admin API

Back-office API for a luxury car rental business.

### Services

- **Cars**: Catalog management with images, bulk archive/restore/delete
- **Quotes**: Quote builder, pricing editor, status tracking
- **AI Search**: Natural-language car selection

### Authentication

All endpoints (except login and health) require a valid JWT token.
Include the token in the Authorization header: `Bearer <token>`
    """,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing under a request id."""
    request_id, started = request_logger.begin(
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    )

    response = await call_next(request)

    request_logger.end(response.status_code, started)
    response.headers["X-Request-ID"] = request_id
    return response


# Exception handlers
@app.exception_handler(AmberDriveError)
async def domain_exception_handler(request: Request, exc: AmberDriveError):
    """Map service errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.warning(
            "Service error",
            error_type=type(exc).__name__,
            error_message=exc.message,
            path=request.url.path,
        )

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
        },
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as ValidationError, with the field errors."""
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={
            "detail": "Validation error",
            "code": ValidationError.code,
            "errors": jsonable_errors(exc),
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(
        "Unhandled exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An unexpected error occurred",
            "code": "internal_error",
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may hold exception instances
    return jsonable_encoder([
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ])


# Include routers
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["Authentication"])
app.include_router(cars.router, prefix=f"{settings.api_prefix}/cars", tags=["Cars"])
app.include_router(quotes.router, prefix=f"{settings.api_prefix}/quotes", tags=["Quotes"])
app.include_router(ai_search.router, prefix=f"{settings.api_prefix}/ai-search", tags=["AI Search"])
app.include_router(stats.router, prefix=f"{settings.api_prefix}/stats", tags=["Dashboard"])

# Uploaded car images
app.mount(
    settings.storage.public_url_prefix,
    StaticFiles(directory=settings.storage.local_path, check_dir=False),
    name="uploads",
)


# Health check endpoint
@app.get(f"{settings.api_prefix}/health", tags=["System"])
async def health_check():
    """System health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "amber_drive.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers if not settings.debug else 1,
    )
