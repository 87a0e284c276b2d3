# src/soldracula/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from soldracula.runtime.structured_log import log_event

Json = Dict[str, Any]

_ON = {"1", "true", "yes", "y", "on"}
_LOGGED_HEADERS = ("user-agent", "x-forwarded-for")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _ON


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Route the root logger to stdout, one message per line.

    log_event() already renders JSON, so the formatter adds nothing around the
    message. The level comes from level_name, else SOLDRACULA_LOG_LEVEL, else
    INFO. Calling again only changes the level.
    """
    name = (level_name or os.environ.get("SOLDRACULA_LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, "_soldracula_configured", False):  # type: ignore[attr-defined]
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.handlers = [handler]
    setattr(root, "_soldracula_configured", True)  # type: ignore[attr-defined]


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One http_request event per request, tagged with a request id.

    The id is taken from x-request-id when the caller sends one and is echoed
    back on the response. SOLDRACULA_LOG_REQUESTS=0 turns the middleware into
    a pass-through; SOLDRACULA_LOG_REQUEST_HEADERS=1 adds user agent and
    forwarding headers to each event.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = _env_flag("SOLDRACULA_LOG_REQUESTS", True)
        self._log_headers = _env_flag("SOLDRACULA_LOG_REQUEST_HEADERS", False)
        self._logger = logging.getLogger("soldracula.http")

    def _headers(self, request: Request) -> Json:
        if not self._log_headers:
            return {}
        return {k: request.headers[k] for k in _LOGGED_HEADERS if request.headers.get(k)}

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id

        status = 500
        err: Optional[str] = None
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            status = int(response.status_code)
            response.headers.setdefault("x-request-id", request_id)
            return response
        except Exception as e:
            err = str(e)
            raise
        finally:
            log_event(
                self._logger,
                "http_request",
                request_id=request_id,
                method=request.method,
                path=str(request.url.path or ""),
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                client=str(request.client.host) if request.client else "",
                headers=self._headers(request),
                error=err,
            )
