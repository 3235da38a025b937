"""
Mastery Gate

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from masterygate.api.deps import get_catalog, get_requirements
from masterygate.api.middleware.request_id import RequestIdMiddleware
from masterygate.api.v1 import router as api_v1_router
from masterygate.config import get_settings
from masterygate.database import close_db, init_db
from masterygate.kernel.errors import (
    AttemptValidationError,
    MasteryGateError,
    StorageError,
)
from masterygate.logging_config import configure_logging, get_logger
from masterygate.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Configures logging, loads the catalog and requirement table (so a
    malformed file fails startup), and creates tables.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    catalog = get_catalog()
    requirements = get_requirements()
    logger.info(
        "Content loaded",
        extra={"concepts": len(catalog), "levels": sorted(requirements.levels())},
    )
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Mastery Gate

    Learners advance only on evidenced mastery.

    ## Features

    - **Attempts**: answers with free-text justification, scored for reasoning quality
    - **Mastery**: accuracy, consistency, reasoning, retention and application per concept
    - **Reviews**: spaced repetition schedule with priority ordering
    - **Progression**: staged, fail-closed level gate with an audit trail of every decision
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(RequestIdMiddleware)


def _error_response(
    request: Request,
    status_code: int,
    content: dict,
) -> JSONResponse:
    headers = {}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
        content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Attach the request id to 404 and other HTTP errors."""
    return _error_response(request, exc.status_code, {"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"detail": "Validation error", "errors": errors},
    )


@app.exception_handler(MasteryGateError)
async def mastery_gate_exception_handler(request: Request, exc: MasteryGateError):
    """Map domain errors to HTTP status codes."""
    if isinstance(exc, AttemptValidationError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        code = "invalid_attempt"
    elif isinstance(exc, StorageError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        code = "storage_unavailable"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        code = "evaluation_failed"
    content = {"detail": exc.message, "code": code}
    if exc.field:
        content["field"] = exc.field
    return _error_response(request, status_code, content)


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__}
    else:
        content = {"detail": "Internal server error"}
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
        concepts=len(get_catalog()),
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "masterygate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
