from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastmcp import Context

from acquire import acquire
from config import Settings
from models import AudioSource, AudioStrategy, PreparedAudio
from transcode import prepare
from utils import _ctx_debug, _remove_quietly


def cleanup_prepared_audio(prepared: PreparedAudio) -> None:
    """Best-effort removal of the upload file and, if different, the file it was made from."""
    if not prepared.requires_cleanup:
        return
    _remove_quietly(prepared.local_path)
    if prepared.source_local_path != prepared.local_path:
        _remove_quietly(prepared.source_local_path)


@asynccontextmanager
async def prepared_audio(
    source: AudioSource,
    strategy: AudioStrategy,
    settings: Settings,
    ctx: Optional[Context] = None,
) -> AsyncIterator[PreparedAudio]:
    """
    Acquires and prepares the audio, yields it, and removes every local temp
    file exactly once when the block exits, whatever the outcome.
    """
    current: Optional[PreparedAudio] = None
    try:
        acquired = await acquire(source, settings, ctx)
        # until transcoding succeeds, the acquired file alone is what needs removing
        current = PreparedAudio(
            local_path=acquired.path,
            media_type="",
            source_local_path=acquired.path,
        )
        current = await prepare(acquired, strategy, settings, ctx)
        yield current
    finally:
        if current is not None:
            cleanup_prepared_audio(current)
            await _ctx_debug(ctx, "Temporary audio files removed")
