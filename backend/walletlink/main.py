"""FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .domain_errors import DomainError
from .problem_details import build_problem_details_response, validation_error_from_request
from .routers import link, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="Wallet Link Service",
    version="1.0.0",
    description="Links wallet addresses to Discord accounts and stores player profiles",
)

# Production safety checks (fail closed on insecure CORS config).
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard).")
if settings.ENV.lower() == "production" and any(
    origin.startswith("http://localhost") or origin.startswith("http://127.0.0.1") for origin in settings.cors_origins
):
    raise RuntimeError("ALLOWED_ORIGINS contains localhost in production; set it to your real frontend origin.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError):
    if exc.http_status < 500:
        logger.warning(
            "request.rejected code=%s status=%s path=%s",
            exc.code,
            exc.http_status,
            request.url.path,
        )
    else:
        logger.error("request.failed code=%s path=%s", exc.code, request.url.path)
    return build_problem_details_response(exc)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    logger.warning("request.invalid path=%s errors=%d", request.url.path, len(exc.errors()))
    return build_problem_details_response(validation_error_from_request(exc))


# Include routers
app.include_router(link.router, prefix=settings.API_PREFIX)
app.include_router(users.router, prefix=settings.API_PREFIX)


@app.get("/system/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": "1.0.0"}


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Wallet Link Service API",
        "version": "1.0.0",
        "docs": "/docs",
    }
