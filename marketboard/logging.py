from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, cast

import structlog
from fastapi import Request
from starlette.responses import Response

from .config import settings

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
job_ctx_var: ContextVar[str | None] = ContextVar("job", default=None)

_LEVELS = {
    "CRITICAL": 50,
    "ERROR": 40,
    "WARNING": 30,
    "INFO": 20,
    "DEBUG": 10,
    "NOTSET": 0,
}


def get_request_id() -> str | None:
    return request_id_ctx_var.get()


def set_request_id(request_id: str | None) -> None:
    request_id_ctx_var.set(request_id)


def configure_logging(level: str | None = None) -> None:
    processors: list[Callable[..., Any]] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _LEVELS.get((level or settings.LOG_LEVEL).upper(), 20)
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _add_context(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    job = job_ctx_var.get()
    if job:
        event_dict["job"] = job
    return event_dict


@contextmanager
def job_context(name: str) -> Iterator[str]:
    """Tag every log event emitted inside the block with ``job=<name>-<short id>``."""
    job_id = f"{name}-{uuid.uuid4().hex[:8]}"
    token = job_ctx_var.set(job_id)
    try:
        yield job_id
    finally:
        job_ctx_var.reset(token)


async def request_id_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    set_request_id(rid)
    start = time.perf_counter()
    try:
        response = cast(Response, await call_next(request))
    finally:
        set_request_id(None)
    structlog.get_logger().info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=getattr(response, "status_code", 0),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
        request_id=rid,
    )
    response.headers["X-Request-ID"] = rid
    return response


def get_logger() -> Any:
    return structlog.get_logger()
