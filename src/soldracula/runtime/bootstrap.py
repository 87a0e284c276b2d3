from __future__ import annotations

import logging
from typing import Any, Dict

from soldracula.runtime.structured_log import log_event
from soldracula.story.client import StoryApiError, WriterMetadata

Json = Dict[str, Any]

log = logging.getLogger("soldracula.bootstrap")

WRITER_LABEL = "Dracula!"
WRITER_DESCRIPTION = "Best meme of all time."
WRITER_URL = "http://soldracula.is"


def writer_metadata_for(address: str) -> WriterMetadata:
    return WriterMetadata(
        writer_key=address,
        label=WRITER_LABEL,
        description=WRITER_DESCRIPTION,
        url=WRITER_URL,
        metadata="{}",
        has_extended_metadata=False,
        system_validated=False,
        api_version=1,
        visible=True,
    )


async def ensure_writer_registered(ctx: Any) -> Json:
    """Idempotent one-time setup.

    Initializes the story program (a rejection is read as "already
    initialized") and then (re-)registers this service's writer metadata.
    """
    try:
        await ctx.story.initialize()
        log_event(log, "story_initialized", authority=ctx.wallet.address)
    except StoryApiError as e:
        log_event(log, "story_already_initialized", authority=ctx.wallet.address, status=e.status_code, error=e.message)

    return await ctx.story.create_writer_metadata(writer_metadata_for(ctx.wallet.address))
