"""Logging setup and per-request context.

Every request is given an id, reused from the client's ``X-Request-ID``
header when it sends a usable one. The id, and the caller's user id once the
bearer token has been resolved, are kept on ``request.state`` so the error
handlers can put them in failure envelopes. The request id is also held in a
context variable so every record logged while the request is served carries
it.
"""

import contextvars
import json
import logging
import re
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids are echoed back, so only accept plain tokens
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:\-]{8,128}$")

_current_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "groupbuy_request_id", default=None
)

# Attributes of a bare LogRecord; anything else arrived through ``extra=``
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

access_logger = logging.getLogger("groupbuy.api.access")


class RequestContextFilter(logging.Filter):
    """Stamps records with the id of the request being served, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            request_id = _current_request_id.get()
            if request_id is not None:
                record.request_id = request_id
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ``extra=`` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # ObjectIds and datetimes in extras are rendered with str()
        return json.dumps(payload, default=str)


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Send all logs to stdout as JSON lines or plain text.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for structured output, "text" for plain lines.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if log_format == "json" else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name, quiet_level in (
        ("uvicorn", logging.WARNING),
        ("uvicorn.access", logging.WARNING),
        ("pymongo", logging.WARNING),
        ("passlib", logging.ERROR),
    ):
        logging.getLogger(name).setLevel(quiet_level)


def request_context(request: Request) -> Dict[str, Optional[str]]:
    """Request and user ids of ``request``, for ``extra=`` and error bodies."""
    return {
        "request_id": getattr(request.state, "request_id", None),
        "user_id": getattr(request.state, "user_id", None),
    }


def _incoming_request_id(request: Request) -> Optional[str]:
    supplied = request.headers.get(REQUEST_ID_HEADER)
    if supplied and _VALID_REQUEST_ID.match(supplied):
        return supplied
    return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns the request id and writes one access log line per request."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = _incoming_request_id(request) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = _current_request_id.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            # The traceback is logged by the unhandled-error handler
            access_logger.error(
                f"{request.method} {request.url.path} raised {type(e).__name__}",
                extra=self._access_fields(request, started),
            )
            raise
        else:
            fields = self._access_fields(request, started)
            fields["status_code"] = response.status_code
            access_logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra=fields,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _current_request_id.reset(token)

    @staticmethod
    def _access_fields(request: Request, started: float) -> Dict[str, Any]:
        fields: Dict[str, Any] = request_context(request)
        fields.update({
            "method": request.method,
            "path": request.url.path,
            "client_host": request.client.host if request.client else None,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        })
        return fields
