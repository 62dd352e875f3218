import sys
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from loguru import logger

from gallery.config import Settings, settings
from gallery.errors import ApiError, api_error_handler, request_validation_handler
from gallery.routes.dashboard import router as dashboard_router
from gallery.routes.health import router as health_router
from gallery.routes.images import router as images_router
from gallery.routes.upload import router as upload_router
from gallery.services.rate_limit import RateLimiter
from gallery.services.storage import URL_PREFIX, ImageStore


def _configure_logging(app_settings: Settings) -> None:
    logger.configure(patcher=lambda record: record["extra"].setdefault("request_id", "-"))
    logger.remove()
    logger.add(
        sys.stderr,
        level=app_settings.log_level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | req={extra[request_id]} | {name}:{function}:{line} | {message}",
    )


class CachedStaticFiles(StaticFiles):
    def __init__(self, *args, max_age: int = 0, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.max_age = max_age

    def file_response(self, *args, **kwargs) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers.setdefault("Cache-Control", f"public, max-age={self.max_age}")
        return response


def create_app(app_settings: Settings | None = None, rate_limiter: RateLimiter | None = None) -> FastAPI:
    app_settings = app_settings or settings
    store = ImageStore(app_settings.upload_path)
    limiter = rate_limiter
    if limiter is None:
        limiter = RateLimiter(
            max_requests=app_settings.rate_limit_max_requests,
            window_seconds=app_settings.rate_limit_window_seconds,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _configure_logging(app_settings)
        store.ensure_directory()
        logger.bind(request_id="-").info(
            "Starting app app_name={} debug={} log_level={} upload_dir={}",
            app_settings.app_name,
            app_settings.debug,
            app_settings.log_level,
            str(store.root),
        )
        yield
        logger.bind(request_id="-").info("Shutting down app app_name={}", app_settings.app_name)

    app = FastAPI(title=app_settings.app_name, debug=app_settings.debug, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.store = store
    app.state.rate_limiter = limiter
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(health_router)
    app.include_router(upload_router)
    app.include_router(images_router)
    app.include_router(dashboard_router)

    @app.middleware("http")
    async def add_request_context(request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid4()))
        bound_logger = logger.bind(request_id=request_id)
        start = time.perf_counter()
        bound_logger.info("Request start method={} path={}", request.method, request.url.path)
        try:
            with logger.contextualize(request_id=request_id):
                response = await call_next(request)
        except Exception:
            bound_logger.exception("Request failed method={} path={}", request.method, request.url.path)
            raise
        duration_ms = (time.perf_counter() - start) * 1000
        bound_logger.info(
            "Request finish method={} path={} status={} duration_ms={:.2f}",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.mount(
        URL_PREFIX,
        CachedStaticFiles(directory=str(store.root), check_dir=False, max_age=app_settings.static_max_age_seconds),
        name="uploads",
    )
    return app


app = create_app()
