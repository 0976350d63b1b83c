"""Main FastAPI application"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from pathlib import Path
import logging
import traceback
import time
import uuid

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from wateradmin.config import settings
from wateradmin.core.database import init_db, SessionLocal
from wateradmin.core.exceptions import BaseAPIException
from wateradmin.core.metrics import REQUEST_COUNT, REQUEST_LATENCY
from wateradmin.core.roles import UserRole
from wateradmin.core.timeutils import isoformat_utc, utcnow
from wateradmin.schemas.response import ErrorResponse
from wateradmin.api.deps import TOKEN_WARNING_STATE
from wateradmin.api.v1 import auth, admin, reports
from wateradmin.services.change_observer import register_change_observers

# Configure logging - ensure log directory exists
_log_dir = Path(settings.get_log_file()).parent
_log_dir.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(settings.get_log_file()),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

TOKEN_HEADERS = ["X-Token-Expiring-Soon", "X-Token-Expires-In", "X-Token-Expires-At"]

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None
)

# GZip compression for large responses
app.add_middleware(GZipMiddleware, minimum_size=500)

# CORS middleware; browsers only see the expiry headers when exposed
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=TOKEN_HEADERS,
)


# Token expiry warning headers
@app.middleware("http")
async def add_token_expiry_headers(request: Request, call_next):
    """Attach expiry warning headers set by the token gate on successful responses"""
    response = await call_next(request)

    warning = getattr(request.state, TOKEN_WARNING_STATE, None)
    if warning and response.status_code < 400:
        response.headers["X-Token-Expiring-Soon"] = "true"
        response.headers["X-Token-Expires-In"] = str(warning["expires_in_minutes"])
        response.headers["X-Token-Expires-At"] = warning["expires_at"]

    return response


# Security headers + request timing middleware
@app.middleware("http")
async def add_headers_and_timing(request: Request, call_next):
    """Add security headers and log slow requests"""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start = time.time()
    response = await call_next(request)
    duration = time.time() - start

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["X-Request-ID"] = request_id

    REQUEST_COUNT.labels(request.method, request.url.path, str(response.status_code)).inc()
    REQUEST_LATENCY.labels(request.method, request.url.path).observe(duration)

    if duration > 1.0:
        logger.warning(
            "Slow request: %s %s took %.2fs request_id=%s",
            request.method,
            request.url.path,
            duration,
            request_id,
        )

    return response


def _error_response(request: Request, status_code: int, message: str, code: str, details=None):
    body = ErrorResponse(
        error=message,
        code=code,
        details=details,
        path=request.url.path,
        timestamp=isoformat_utc(utcnow()),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


# Exception handlers
@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"API Exception: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "code": exc.error_code,
            "path": request.url.path,
            "method": request.method
        }
    )

    return _error_response(request, exc.status_code, exc.message, exc.error_code, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        f"Validation error: {errors}",
        extra={"path": request.url.path, "method": request.method}
    )

    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation failed",
        "validation_error",
        errors,
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors"""
    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        }
    )

    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "A database error occurred. Please try again later.",
        "database_error",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        }
    )

    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Our team has been notified.",
        "server_error",
    )


def seed_admin_user() -> None:
    """Create the configured admin account when no user has its email"""
    from wateradmin.services.user_service import user_service

    db = SessionLocal()
    try:
        if not user_service.get_user_by_email(db, settings.ADMIN_EMAIL):
            user_service.create_user(
                db,
                name=settings.ADMIN_NAME,
                email=settings.ADMIN_EMAIL,
                password=settings.ADMIN_PASSWORD,
                role=UserRole.ADMIN,
            )
            logger.info(f"Created admin user: {settings.ADMIN_EMAIL}")
    finally:
        db.close()


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    settings.validate_security_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    register_change_observers()

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    try:
        seed_admin_user()
    except SQLAlchemyError as e:
        logger.error(f"Failed to create admin user: {e}")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info(f"Shutting down {settings.APP_NAME}")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    db_ok = True
    db_error = None
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db_ok = False
        db_error = str(exc)
    finally:
        db.close()

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.APP_VERSION,
        "timestamp": isoformat_utc(utcnow()),
        "readiness": {
            "database": {"ok": db_ok, "error": db_error},
        },
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/api/docs" if settings.DEBUG else "disabled"
    }


# Include routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
app.include_router(reports.router, prefix="/api/v1/reports", tags=["Reports"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wateradmin.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS
    )
