"""Structured JSON logging.

Every record carries an ``event`` name (``expense.submitted``, ``fx.rates.synced``) plus
flat fields. Request, user, tenant and Celery task ids are bound to the current context
and merged into each record automatically.
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tripspend.core.config import settings

ROOT_LOGGER = "tripspend"

_context: contextvars.ContextVar[dict[str, str]] = contextvars.ContextVar(
    "log_context", default={}
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=UTC)
        payload: dict[str, Any] = {
            "ts": ts.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", None) or record.getMessage(),
        }
        payload.update(getattr(record, "fields", None) or {})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging() -> None:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO))
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def bind_context(**values: str | None) -> contextvars.Token:
    """Add ``values`` to the logging context; returns a token for :func:`unbind_context`."""
    merged = {**_context.get(), **{k: v for k, v in values.items() if v is not None}}
    return _context.set(merged)


def unbind_context(token: contextvars.Token) -> None:
    _context.reset(token)


def set_user_context(user_id: str | None, tenant_id: str | None = None) -> None:
    bind_context(user_id=user_id, tenant_id=tenant_id)


def set_task_context(task_id: str | None) -> contextvars.Token:
    return bind_context(celery_task_id=task_id)


def reset_task_context(token: contextvars.Token) -> None:
    unbind_context(token)


def _fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {**_context.get(), **{k: v for k, v in fields.items() if v is not None}}


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    logger.log(level, event, extra={"event": event, "fields": _fields(fields)})


def log_exception(logger: logging.Logger, event: str, **fields: Any) -> None:
    logger.exception(event, extra={"event": event, "fields": _fields(fields)})


def monotonic_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        logger = get_logger(__name__)
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        # a fresh context per request so user ids never leak between requests
        token = _context.set({"request_id": request_id})
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log_exception(
                logger,
                "http.request.error",
                method=request.method,
                path=request.url.path,
                duration_ms=monotonic_ms(start),
            )
            raise
        else:
            response.headers["x-request-id"] = request_id
            log_event(
                logger,
                "http.request.finish",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=monotonic_ms(start),
            )
            return response
        finally:
            _context.reset(token)
