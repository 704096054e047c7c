import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse, Response
from app.api.routes import events, matches
from app.core.config import Settings, get_settings
from app.core.logging import client_ip_ctx, configure_logging, request_id_ctx
from app.core.limiter import limiter
from app.core.metrics import MetricsAggregator
from app.services.event_store import EventStore, EventStoreError, get_store


def _error(request: Request, status_code: int, code: str, message, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=extra.pop("headers", None),
        content={
            "error": {
                "code": code,
                "message": message,
                "request_id": getattr(request.state, "request_id", None),
                **extra,
            }
        },
    )


def _is_excluded(path: str, excluded: frozenset[str]) -> bool:
    return any(path == p or path.startswith(p + "/") for p in excluded)


def create_app(
    settings: Settings | None = None,
    metrics: MetricsAggregator | None = None,
    store: EventStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.metrics = metrics or MetricsAggregator(window_size=settings.latency_window)
    app.state.store = store or get_store(settings)

    rate_limit_enabled = settings.env.lower() != "test"
    if rate_limit_enabled:
        from slowapi.errors import RateLimitExceeded
        from slowapi.middleware import SlowAPIMiddleware

        app.state.limiter = limiter
        app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
        max_age=settings.cors_max_age,
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if settings.env.lower() == "production":
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
        return response

    @app.middleware("http")
    async def enforce_json_content_type(request: Request, call_next):
        if request.method in {"POST", "PUT", "PATCH"}:
            content_length = request.headers.get("content-length")
            has_body = False
            if content_length:
                try:
                    has_body = int(content_length) > 0
                except ValueError:
                    has_body = False
            if has_body:
                content_type = request.headers.get("content-type", "")
                media_type = content_type.split(";")[0].strip().lower()
                if media_type != "application/json":
                    return _error(
                        request, 415, "unsupported_media_type",
                        "Content-Type must be application/json",
                    )
        return await call_next(request)

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.max_body_bytes:
            return _error(request, 413, "payload_too_large", "Request body too large")
        return await call_next(request)

    excluded = settings.excluded_metric_paths

    # registered last so it wraps every other middleware
    @app.middleware("http")
    async def observe_request(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        request_id_ctx.set(request_id)
        if request.client:
            client_ip_ctx.set(request.client.host)
        path = request.url.path
        observed = not _is_excluded(path, excluded)
        start = time.perf_counter()

        def finish(status_code: int) -> None:
            duration_ms = (time.perf_counter() - start) * 1000
            logging.getLogger("access").info(
                "request",
                extra={
                    "event": {
                        "method": request.method,
                        "path": path,
                        "status_code": status_code,
                        "duration_ms": round(duration_ms, 3),
                    }
                },
            )
            if observed:
                app.state.metrics.record(duration_ms, request.method, path, status_code)

        try:
            response: Response = await call_next(request)
        except Exception:
            finish(500)
            raise
        response.headers["X-Request-ID"] = request_id
        finish(response.status_code)
        return response

    @app.get("/health")
    @app.get("/health/live")
    def live():
        return {"status": "ok"}

    @app.get("/health/ready")
    def ready(request: Request):
        if not request.app.state.store.ping():
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    @app.get("/metrics", response_class=PlainTextResponse)
    def metrics_endpoint(request: Request):
        return PlainTextResponse(request.app.state.metrics.render())

    @app.get("/metrics.json")
    def metrics_json(request: Request):
        return request.app.state.metrics.as_dict()

    async def store_error_handler(request: Request, exc: EventStoreError):
        logging.getLogger("app").error(
            "Event store failure",
            exc_info=exc,
            extra={"event": {"method": request.method, "path": request.url.path}},
        )
        message = "Event store unavailable"
        if settings.env.lower() != "production":
            message = f"{message}: {exc}"
        return _error(request, 500, "store_unavailable", message)

    async def generic_exception_handler(request: Request, exc: Exception):
        logging.getLogger("app").exception(
            "Unhandled exception",
            extra={
                "event": {
                    "method": request.method,
                    "path": request.url.path,
                    "request_id": getattr(request.state, "request_id", None),
                }
            },
        )
        message = "Internal server error"
        details = None
        if settings.env.lower() != "production":
            message = f"{exc.__class__.__name__}: {exc}"
            details = [{"type": exc.__class__.__name__}]
        return _error(request, 500, "internal_server_error", message, details=details)

    async def rate_limit_handler(request: Request, exc: Exception):
        retry_after = None
        detail = getattr(exc, "detail", None)
        if isinstance(detail, dict):
            if "retry_after" in detail:
                retry_after = int(detail["retry_after"])
            elif "reset" in detail:
                retry_after = max(0, int(detail["reset"] - time.time()))
        headers = {}
        if retry_after is not None:
            headers["Retry-After"] = str(retry_after)
        return _error(request, 429, "rate_limited", "Too many requests", headers=headers)

    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(
            request, 422, "validation_error", "Validation error",
            details=exc.errors(),
        )

    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error(request, exc.status_code, f"http_{exc.status_code}", exc.detail)

    app.add_exception_handler(EventStoreError, store_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    if rate_limit_enabled:
        app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.include_router(events.router, prefix="/api")
    app.include_router(matches.router, prefix="/api")
    return app


app = create_app()
