import asyncio
import os
from typing import List, Optional, Tuple

from fastmcp import Context
from fastmcp.tools.tool import ToolResult

from config import Settings
from errors import ConfigurationError

__all__ = [
    "ToolResult",
    "_ctx_info",
    "_ctx_debug",
    "_ctx_warning",
    "_ctx_error",
    "_ctx_progress",
    "_require_settings",
    "_run_process",
    "_remove_quietly",
]


async def _ctx_info(ctx: Optional[Context], msg: str) -> None:
    if ctx:
        await ctx.info(msg)


async def _ctx_debug(ctx: Optional[Context], msg: str) -> None:
    if ctx:
        await ctx.debug(msg)


async def _ctx_warning(ctx: Optional[Context], msg: str) -> None:
    if ctx:
        await ctx.warning(msg)


async def _ctx_error(ctx: Optional[Context], msg: str) -> None:
    if ctx:
        await ctx.error(msg)


async def _ctx_progress(ctx: Optional[Context], progress: int) -> None:
    if ctx:
        await ctx.report_progress(progress=progress, total=100)


def _require_settings(settings: Settings) -> None:
    """Checks the settings a transcription cannot run without."""
    if not settings.gemini_api_key:
        raise ConfigurationError("GEMINI_API_KEY environment variable is not set")


async def _run_process(cmd: List[str]) -> Tuple[int, str]:
    """
    Runs an external tool and returns (returncode, stderr text).
    OSError from the spawn itself (binary missing, not executable) propagates.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await asyncio.shield(proc.wait())
        raise
    return proc.returncode, stderr.decode("utf-8", errors="ignore")


def _remove_quietly(path: Optional[str]) -> bool:
    """Deletes a temp file, ignoring a missing file or OS errors. Returns True if removed."""
    if not path:
        return False
    try:
        os.remove(path)
        return True
    except OSError:
        return False
