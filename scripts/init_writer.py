#!/usr/bin/env python3

"""Register this service as a story writer from the command line.

Same bootstrap as GET /init, without starting the HTTP server.

Usage:
  ANCHOR_WALLET=~/.config/solana/id.json python3 scripts/init_writer.py

Optional env overrides:
  SOLDRACULA_MODE=dev
  SOLDRACULA_STORY_API_URL=http://127.0.0.1:9100
"""

from __future__ import annotations

import asyncio
import json

from soldracula.api.structured_logging import configure_structured_logging
from soldracula.config import load_service_config
from soldracula.env import load_dotenv_if_present
from soldracula.runtime.bootstrap import ensure_writer_registered
from soldracula.runtime.context import ServiceContext


async def _run() -> int:
    cfg = load_service_config()
    configure_structured_logging(cfg.log_level)

    ctx = ServiceContext.from_config(cfg)
    try:
        out = await ensure_writer_registered(ctx)
    finally:
        await ctx.aclose()

    print(json.dumps(out, indent=2, sort_keys=True))
    return 0


def main() -> int:
    load_dotenv_if_present()
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
