from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request, Response

from soldracula.runtime.bootstrap import ensure_writer_registered
from soldracula.runtime.context import ServiceContext
from soldracula.runtime.metrics import format_prometheus, set_gauge

router = APIRouter()

Json = Dict[str, Any]


class ServiceNotReady(RuntimeError):
    pass


def _context(request: Request) -> ServiceContext:
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise ServiceNotReady("service context not attached to app.state")
    return ctx


@router.get("/init")
async def init_writer(request: Request) -> Json:
    """One-time story setup; safe to call repeatedly."""
    return await ensure_writer_registered(_context(request))


@router.get("/dracula/{txid}")
async def dracula(request: Request, txid: str) -> Json:
    """Verify a fee payment and append the script to the referenced asset.

    Returns the confirmation handle of the last append; it is causally last,
    so callers wanting certainty should wait on that one.
    """
    handle = await _context(request).handle_submission(txid)
    return handle.to_json()


@router.get("/health")
def health(request: Request) -> Json:
    ctx = getattr(request.app.state, "ctx", None)
    cfg = request.app.state.cfg
    out: Json = {"ok": True, "mode": cfg.mode, "ready": ctx is not None}
    if ctx is not None:
        out["wallet"] = ctx.wallet.address
        out["dedup_entries"] = len(ctx.cache)
    return out


@router.get("/metrics")
def metrics(request: Request) -> Response:
    """Prometheus-style metrics.

    Disabled by default. Enable with:
      SOLDRACULA_METRICS_ENABLED=1
    """
    if not request.app.state.cfg.metrics_enabled:
        return Response(status_code=404, content="not_found\n", media_type="text/plain")
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is not None:
        set_gauge("dedup_entries", len(ctx.cache))
    return Response(content=format_prometheus(), media_type="text/plain")
