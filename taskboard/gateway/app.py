from __future__ import annotations

import datetime as _dt
import json
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError as FastAPIRequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.config import GatewayConfig, load_config
from taskboard.errors import (
    ApiRateLimitExceeded,
    AppError,
    InternalServerError,
    PayloadTooLargeError,
    RequestValidationError,
    error_for_status,
)
from taskboard.gateway.ratelimit import FixedWindowRateLimiter
from taskboard.observability import (
    configure_uvicorn_logging,
    get_json_logger,
    get_metrics,
    new_request_id,
    use_request_id,
)
from taskboard.store import TaskStore
from taskboard.validation import validate_create_request, validate_list_query

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}

CallNext = Callable[[Request], Awaitable[Response]]


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _error_response(exc: AppError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=headers)


async def _read_json_body(request: Request, max_bytes: int) -> Any:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLargeError()
    raw = b""
    async for chunk in request.stream():
        raw += chunk
        if len(raw) > max_bytes:
            raise PayloadTooLargeError()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise RequestValidationError("Request body must be valid JSON") from None


def create_app(store: TaskStore, config: GatewayConfig | None = None) -> FastAPI:
    cfg = config or load_config()
    app = FastAPI(title="taskboard")
    # Configure uvicorn logging at app startup to avoid import-time side effects
    configure_uvicorn_logging()
    logger = get_json_logger("taskboard.gateway")
    metrics = get_metrics()
    limiter = (
        FixedWindowRateLimiter(limit=cfg.rate_limit_max, window_s=cfg.rate_limit_window_s)
        if cfg.rate_limit_max > 0
        else None
    )
    app.state.store = store
    app.state.rate_limiter = limiter

    # ----------------------------
    # Error mapping
    # ----------------------------

    @app.exception_handler(AppError)
    async def _on_app_error(request: Request, exc: AppError) -> JSONResponse:
        logger.info(
            "request rejected",
            extra={
                "event": "request_rejected",
                "path": request.url.path,
                "code": exc.code,
                "status_code": exc.status_code,
            },
        )
        return _error_response(exc)

    @app.exception_handler(FastAPIRequestValidationError)
    async def _on_schema_error(
        request: Request, exc: FastAPIRequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            loc = [str(p) for p in first.get("loc", ()) if p not in {"body", "query", "path"}]
            field = ".".join(loc) or "value"
            message = f'"{field}" {first.get("msg", "is invalid")}'
        return _error_response(RequestValidationError(message))

    @app.exception_handler(StarletteHTTPException)
    async def _on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message: str | None = f"Route {request.url.path} not found"
        elif exc.status_code < 500 and isinstance(exc.detail, str):
            message = exc.detail
        else:
            message = None
        return _error_response(error_for_status(exc.status_code, message), headers=exc.headers)

    # ----------------------------
    # Middleware (last registered runs first)
    # ----------------------------

    @app.middleware("http")
    async def _rate_limit(request: Request, call_next: CallNext) -> Response:
        if limiter is None:
            return await call_next(request)
        decision = limiter.hit(_client_key(request))
        headers = decision.headers(limiter.window_s)
        if not decision.allowed:
            logger.warning(
                "rate limit exceeded",
                extra={
                    "event": "rate_limited",
                    "client": _client_key(request),
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            metrics.increment("rate_limited", {"path": request.url.path})
            headers["Retry-After"] = str(decision.reset_s)
            return _error_response(ApiRateLimitExceeded(), headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response

    @app.middleware("http")
    async def _request_boundary(request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get("X-Request-ID") or new_request_id()
        started = time.perf_counter()
        with use_request_id(request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "unhandled error",
                    extra={
                        "event": "internal_error",
                        "path": request.url.path,
                        "method": request.method,
                    },
                )
                metrics.increment("internal_errors", {"path": request.url.path})
                response = _error_response(InternalServerError())
            response.headers.update(SECURITY_HEADERS)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "http request",
                extra={
                    "event": "http_request",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000.0, 3),
                },
            )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ----------------------------
    # Routes
    # ----------------------------

    tasks_path = f"{cfg.api_prefix}/tasks"

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "OK", "timestamp": _dt.datetime.now(_dt.UTC).isoformat()}

    @app.get(tasks_path)
    async def list_tasks(request: Request) -> JSONResponse:
        query = await validate_list_query(request.query_params)
        tasks = store.list_tasks(status=query.status, priority=query.priority)
        metrics.increment("tasks_listed")
        return JSONResponse([t.to_json() for t in tasks])

    @app.post(tasks_path)
    async def create_task(request: Request) -> JSONResponse:
        body = await _read_json_body(request, cfg.max_body_bytes)
        payload = await validate_create_request(body)
        task = store.create_task(payload)
        return JSONResponse(task.to_json(), status_code=201)

    @app.delete(tasks_path)
    async def clear_tasks() -> Response:
        store.clear_all()
        return Response(status_code=200)

    return app


__all__ = ["SECURITY_HEADERS", "create_app"]
