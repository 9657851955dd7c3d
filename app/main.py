import logging
import time
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Deque

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import Settings, get_settings
from app.core.errors import AppError
from app.core.logging import configure_logging
from app.db.session import Database
from app.routers import admin, api_keys, auth, contact, uploads
from app.routers.responses import error_body
from app.services.image_host import ImageHostClient

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, limit_per_minute: int) -> None:
        self.limit_per_minute = limit_per_minute
        self._hits: dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = 0.0

    def hit(self, key: str, now: float | None = None) -> bool:
        now = datetime.now(timezone.utc).timestamp() if now is None else now
        window_start = now - 60
        if now - self._last_sweep >= 60:
            self._sweep(window_start)
            self._last_sweep = now
        bucket = self._hits[key]
        while bucket and bucket[0] < window_start:
            bucket.popleft()
        if len(bucket) >= self.limit_per_minute:
            return False
        bucket.append(now)
        return True

    def _sweep(self, window_start: float) -> None:
        # Drop clients whose newest hit has left the window.
        stale = [key for key, bucket in self._hits.items() if not bucket or bucket[-1] < window_start]
        for key in stale:
            del self._hits[key]


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return ", ".join(messages) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, **exc.extra))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(_validation_message(exc)))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)), headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", extra={"path": request.url.path, "method": request.method})
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_body("Server Error"))


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    image_host: ImageHostClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(logging.DEBUG if settings.debug else logging.INFO)
    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.db = database or Database(settings.database_url, echo=settings.debug)
    app.state.image_host = image_host or ImageHostClient.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    limiter = RateLimiter(settings.rate_limit_per_minute)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        key = request.client.host if request.client else "unknown"
        if not limiter.hit(key):
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_body("Too many requests, please try again later"),
            )
        return await call_next(request)

    @app.middleware("http")
    async def access_log_middleware(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request_completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response

    register_exception_handlers(app)

    for router in (auth.router, uploads.router, api_keys.router, api_keys.public_router, admin.router, contact.router):
        app.include_router(router, prefix=settings.api_prefix)

    @app.on_event("startup")
    def startup() -> None:
        if settings.auto_create_tables:
            app.state.db.create_all()

    @app.on_event("shutdown")
    def shutdown() -> None:
        app.state.db.dispose()

    @app.get("/health")
    def health() -> dict:
        return {"success": True, "status": "ok", "environment": settings.environment}

    return app


app = create_app()
