"""Main FastAPI application for the TAUMine API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from tenacity import Retrying

from taumine.api.rate_limit import limiter
from taumine.api.v1.admin import router as admin_router
from taumine.api.v1.auth import router as auth_router
from taumine.api.v1.notifications import router as notifications_router
from taumine.api.v1.pioneers import router as pioneers_router
from taumine.api.v1.profile import router as profile_router
from taumine.api.v1.referral import router as referral_router
from taumine.api.v1.tracking import router as tracking_router
from taumine.auth.retry import auth_retrying as build_auth_retrying
from taumine.email.service import EmailService
from taumine.errors import TauMineError
from taumine.logging_config import configure_logging, get_logger
from taumine.settings import Settings, settings as default_settings
from taumine.storage.db import Database

logger = get_logger(__name__)

API_VERSION = "1.0.0"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), geolocation=(), microphone=(), payment=()"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("app_starting", env=app.state.settings.env)

    app.state.db.create_tables()

    yield

    logger.info("app_shutting_down")
    app.state.db.engine.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    """Map errors onto the ``{"error": ..., "message": ...}`` response shape."""

    @app.exception_handler(TauMineError)
    async def taumine_error_handler(request: Request, exc: TauMineError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message, code=exc.code)
        else:
            logger.warning("request_rejected", path=request.url.path, error=exc.message, code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
        return JSONResponse(status_code=400, content={"error": "Invalid request", "message": message})

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests. Please try again later."},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    app_settings: Settings | None = None,
    database: Database | None = None,
    email_service: EmailService | None = None,
    auth_retrying: Retrying | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        app_settings: Settings (defaults to the environment)
        database: Database (defaults to ``DATABASE_URL``)
        email_service: Outbound email client
        auth_retrying: Retry controller for auth calls

    Returns:
        Configured FastAPI app
    """
    app_settings = app_settings or default_settings
    configure_logging(app_settings.log_level, app_settings.log_format)

    # Hide API docs in production
    is_production = app_settings.env == "production"

    app = FastAPI(
        title="TAUMine API",
        description="Pioneer registration, referral rewards and leaderboard",
        version=API_VERSION,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        openapi_url=None if is_production else "/api/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.db = database or Database(app_settings.database_url)
    app.state.email_service = email_service or EmailService(app_settings.brevo_api_key, app_settings=app_settings)
    app.state.auth_retrying = auth_retrying or build_auth_retrying(max_attempts=app_settings.auth_max_attempts)

    # Security Headers middleware (must be added before CORS)
    app.add_middleware(SecurityHeadersMiddleware)

    allowed_origins = [
        origin.strip()
        for origin in app_settings.allowed_origins.split(",")
        if origin.strip()
    ]

    # Block wildcard in production
    if is_production and "*" in allowed_origins:
        logger.error("cors_wildcard_blocked", message="Wildcard CORS not allowed in production")
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        max_age=3600,
    )

    # Rate limiting (shared instance from rate_limit module)
    app.state.limiter = limiter

    register_exception_handlers(app)

    for router in (
        auth_router,
        profile_router,
        referral_router,
        pioneers_router,
        notifications_router,
        tracking_router,
        admin_router,
    ):
        app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": API_VERSION,
            "env": app_settings.env,
        }

    return app


# Create app instance
app = create_app()
