"""
Vacancy API - FastAPI application entry point.

REST backend for job vacancies: CRUD, paginated listing, full-text search,
per-IP rate limiting and response caching.

Run with:
    uvicorn vacancy_api.main:app
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import os

from . import __version__
from .cache import create_cache
from .config import settings
from .database import engine, run_migrations
from .exceptions import RateLimitExceeded, VacancyAPIError
from .rate_limit import RateLimiter
from .repositories import get_search_strategy
from .routers import vacancies

# --- Logging Configuration ---
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("vacancy_api")


def setup_database():
    """Apply pending migrations to the configured database."""
    run_migrations(engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply migrations on startup."""
    logger.info("Starting Vacancy API...")
    os.makedirs("data", exist_ok=True)
    if settings.run_migrations_on_startup:
        setup_database()
    logger.info("Vacancy API ready!")
    yield
    logger.info("Shutting down Vacancy API...")


app = FastAPI(
    title="Vacancy API",
    description="Job vacancy management - CRUD, paginated listing and full-text search",
    version=__version__,
    lifespan=lifespan
)

# --- Shared components ---
# Chosen once per process; request handlers read them from app.state.
app.state.cache = create_cache(settings.cache)
app.state.search_strategy = get_search_strategy(engine.dialect.name, settings.fulltext_config)
app.state.rate_limiter = (
    RateLimiter(
        app.state.cache,
        limit=settings.rate_limit.requests,
        window=settings.rate_limit.window,
        fail_open=settings.rate_limit.fail_open,
    )
    if settings.rate_limit.enabled else None
)
app.state.trust_forwarded_for = settings.rate_limit.trust_forwarded_for
app.state.require_token_for_writes = settings.auth.require_token_for_writes


# --- Error Handlers ---

@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    headers = {}
    if exc.decision is not None:
        headers.update(exc.decision.headers())
        headers["Retry-After"] = str(max(1, exc.decision.reset_after))
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


@app.exception_handler(VacancyAPIError)
async def vacancy_api_error_handler(request: Request, exc: VacancyAPIError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.setdefault(".".join(loc) or "body", []).append(error.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=400,
        content={"success": False, "errors": errors, "message": "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


# --- Security Headers Middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Middleware ---
# Parse allowed origins from config
_allowed_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

# Include routers
app.include_router(vacancies.router, prefix="/vacancy", tags=["vacancy"])


@app.get("/health", tags=["system"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
