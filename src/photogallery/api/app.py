"""FastAPI application serving the photo, upload and guestbook API."""

import os
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .. import __version__
from ..config import get_site_url
from ..error_handling import GalleryError, RateLimitError
from ..health import check_liveness, check_readiness, perform_health_check
from ..logging_config import configure_structured_logging, get_logger, log_performance
from ..services.rate_limit import ApiRateLimiter, is_rate_limited_path
from .dependencies import client_ip
from .routes import messages, photos, upload

logger = get_logger(__name__)


def _allowed_origins() -> list[str]:
    origins_env = os.getenv("ALLOWED_ORIGINS") or get_site_url()
    return [origin.strip() for origin in origins_env.split(",") if origin.strip()]


def create_app(rate_limiter: ApiRateLimiter | None = None) -> FastAPI:
    configure_structured_logging()

    app = FastAPI(title="Photo Gallery API", version=__version__)
    app.state.rate_limiter = rate_limiter or ApiRateLimiter()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if is_rate_limited_path(request.url.path):
            try:
                app.state.rate_limiter.check(client_ip(request))
            except RateLimitError as e:
                return PlainTextResponse(e.user_message, status_code=e.http_status)
        return await call_next(request)

    @app.middleware("http")
    async def request_timing(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        log_performance(
            "api_request",
            time.perf_counter() - start,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(request: Request, exc: GalleryError):
        return JSONResponse({"error": exc.user_message, "code": exc.code}, status_code=exc.http_status)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("request_validation_failed", path=request.url.path, errors=str(exc.errors()))
        return JSONResponse({"error": "Invalid request", "code": "invalid_request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_api_error", path=request.url.path, error=str(exc))
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.get("/health")
    def health():
        result = perform_health_check()
        return JSONResponse(result, status_code=200 if result["status"] == "healthy" else 503)

    @app.get("/health/ready")
    def ready():
        result = check_readiness()
        return JSONResponse(result, status_code=200 if result["status"] == "ready" else 503)

    @app.get("/health/live")
    def live():
        return check_liveness()

    app.include_router(photos.router)
    app.include_router(upload.router)
    app.include_router(messages.router)

    return app


app = create_app()
