from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from soldracula.api.routes import router
from soldracula.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from soldracula.config import ServiceConfig, load_service_config, parse_cors_origins
from soldracula.ledger.client import LedgerRpcError
from soldracula.runtime.context import ServiceContext
from soldracula.runtime.errors import ServiceError
from soldracula.runtime.structured_log import log_event
from soldracula.story.client import StoryApiError

log = logging.getLogger("soldracula.api")


def build_context(config: ServiceConfig) -> ServiceContext:
    """Build the runtime context for the API.

    This wrapper exists so tests can monkeypatch `soldracula.api.app.build_context`
    without touching the wallet file or the network.
    """
    return ServiceContext.from_config(config)


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ServiceError):
        return exc.code
    if isinstance(exc, LedgerRpcError):
        return "ledger_error"
    if isinstance(exc, StoryApiError):
        return "story_api_error"
    return "internal"


async def _handle_error(request: Request, exc: Exception) -> JSONResponse:
    """Single catch-all: every failure is a 500 carrying the error message.

    Unexpected exceptions are re-raised by Starlette after this response is
    sent and the server logs their traceback, so only the event is logged here.
    """
    code = _error_code(exc)
    details = exc.details if isinstance(exc, ServiceError) else {}
    log_event(log, "request_failed", path=str(request.url.path), code=code, error=str(exc), details=details)
    return JSONResponse(status_code=500, content={"error": str(exc), "code": code})


def create_app(
    *,
    config: Optional[ServiceConfig] = None,
    boot_runtime: bool = True,
    context: Optional[ServiceContext] = None,
) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load the wallet and build the service context
      - False: keep lightweight for unit tests (no context unless given)

    context:
      - a prebuilt ServiceContext (test doubles); takes precedence
    """
    cfg = config or load_service_config()
    configure_structured_logging(cfg.log_level)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        yield
        ctx = getattr(app.state, "ctx", None)
        if ctx is not None:
            await ctx.aclose()

    # Disable docs in production.
    if cfg.mode == "prod":
        app = FastAPI(title="soldracula", docs_url=None, redoc_url=None, openapi_url=None, lifespan=_lifespan)
    else:
        app = FastAPI(title="soldracula", lifespan=_lifespan)

    app.state.cfg = cfg

    if context is not None:
        app.state.ctx = context
    elif boot_runtime:
        app.state.ctx = build_context(cfg)
    else:
        app.state.ctx = None

    # --- Middleware ---
    app.add_middleware(RequestLogMiddleware)

    cors_origins = parse_cors_origins(cfg)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

    # --- Errors ---
    for exc_type in (ServiceError, LedgerRpcError, StoryApiError, Exception):
        app.add_exception_handler(exc_type, _handle_error)

    # --- Routes ---
    app.include_router(router)

    return app
