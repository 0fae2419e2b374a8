"""FastAPI application entry point."""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from dsrdesk.api.deps import build_pii_codec
from dsrdesk.api.v1 import audit_logs, companies, dsr, health
from dsrdesk.config import settings
from dsrdesk.middleware.logging import LoggingMiddleware, setup_logging
from dsrdesk.schemas.error import REMEDIATION_HINTS, VALIDATION_CODE_MAPPING, ErrorCode, ErrorDetail, ErrorResponse

# Setup structured logging
setup_logging()
logger = structlog.get_logger(__name__)


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", f"req_{uuid.uuid4().hex[:12]}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    # Startup: key material is resolved once; strict production mode fails here
    app.state.pii_codec = build_pii_codec()
    logger.info(
        "application_starting",
        env=settings.app_env,
        encryption_fallback=app.state.pii_codec.cipher.config.using_fallback,
    )
    yield
    # Shutdown
    logger.info("application_shutting_down")


app = FastAPI(
    title="DSR Desk",
    description="Data Subject Request intake and handling with an audit trail",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors with structured response.

    Returns 422 with field-level validation errors.
    """
    request_id = _request_id(request)

    details = []
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        code = VALIDATION_CODE_MAPPING.get(error["type"], ErrorCode.VALIDATION_ERROR)
        if code == ErrorCode.VALIDATION_ERROR and field_path.endswith("email"):
            code = ErrorCode.INVALID_EMAIL

        # body fields carry requester PII and free text; never echo them back
        value = None if error["loc"][:1] == ("body",) else error.get("input")

        details.append(ErrorDetail(code=code, message=error["msg"], field=field_path, value=value))

    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        request_id=request_id,
        error_count=len(details),
    )

    remediation = next(
        (REMEDIATION_HINTS[d.code] for d in details if d.code in REMEDIATION_HINTS),
        "Check the API documentation for correct request format at /docs",
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            message="Request validation failed",
            details=details,
            remediation=remediation,
            request_id=request_id,
        ).model_dump(mode="json"),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Handle database errors.

    Returns 503 Service Unavailable.
    """
    request_id = _request_id(request)

    logger.error(
        "database_error",
        path=request.url.path,
        method=request.method,
        request_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )

    error_message = str(exc) if settings.debug and settings.app_env != "production" else "Database temporarily unavailable"

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorResponse(
            error="DatabaseError",
            message="A database error occurred",
            details=[ErrorDetail(code=ErrorCode.DATABASE_ERROR, message=error_message)],
            remediation=REMEDIATION_HINTS.get(ErrorCode.DATABASE_ERROR),
            request_id=request_id,
        ).model_dump(mode="json"),
        headers={"Retry-After": "30"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other uncaught exceptions.

    Logs the stack trace; the client gets a safe message and the request ID.
    """
    request_id = _request_id(request)

    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        request_id=request_id,
        exception_type=type(exc).__name__,
    )

    internal_message = str(exc) if settings.debug and settings.app_env != "production" else "Internal server error"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            message="An unexpected error occurred",
            details=[ErrorDetail(code=ErrorCode.INTERNAL_ERROR, message=internal_message)],
            remediation="Please contact support with the request ID",
            request_id=request_id,
        ).model_dump(mode="json"),
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "service": "DSR Desk",
        "version": "0.1.0",
        "status": "operational",
        "docs": "/docs",
    }


app.include_router(health.router, tags=["Health"])
app.include_router(companies.router, prefix="/v1", tags=["Companies"])
app.include_router(dsr.router, prefix="/v1", tags=["DSR"])
app.include_router(audit_logs.router, prefix="/v1", tags=["Audit Logs"])
