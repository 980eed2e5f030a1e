"""
Brings the requested audio onto local disk.

One of three paths per request (see models.AudioSource):
 - inline base64 payload -> decoded and written to a temp file
 - HTTP(S) URL -> streamed to a temp file (never fully buffered)
 - SSH host + path -> pulled with scp into a temp file
Every path ends with the same size gate, before any transcoding happens.
"""

import base64
import binascii
import os
import posixpath
import re
import tempfile
import time
from typing import Optional
from urllib.parse import unquote, urlparse

import aiofiles
import httpx
from fastmcp import Context
from mcp.shared.exceptions import McpError
from opentelemetry import trace

from config import Settings
from errors import FetchFailed, FileTooLarge, InvalidPayload, ToolUnavailable, TransferFailed
from metrics import AUDIO_ACQUISITIONS
from models import AcquiredAudio, AudioSource, SourceKind
from utils import _ctx_debug, _ctx_error, _ctx_info, _remove_quietly, _run_process

tracer = trace.get_tracer(__name__)

_DATA_URI_PREFIX = re.compile(r"^data:[^,]*?;base64,", re.IGNORECASE)
_NON_BASE64 = re.compile(r"[^A-Za-z0-9+/\-_]")
_UNSAFE_NAME_CHARS = re.compile(r"[^\w.\-]+")


def _safe_name(name: str) -> str:
    base = os.path.basename(name.replace("\\", "/")) or "audio"
    return _UNSAFE_NAME_CHARS.sub("_", base)[-100:]


def _make_temp_path(settings: Settings, kind: str, name: str) -> str:
    fd, path = tempfile.mkstemp(
        prefix=f"gemini_{kind}_{time.time_ns()}_",
        suffix=f"_{_safe_name(name)}",
        dir=settings.temp_dir,
    )
    os.close(fd)
    return path


def _enforce_size_limit(path: str, settings: Settings) -> int:
    size = os.path.getsize(path)
    if size > settings.max_file_size_bytes:
        _remove_quietly(path)
        raise FileTooLarge(size, settings.max_file_size_bytes)
    return size


def decode_inline_payload(content: str) -> bytes:
    """
    Lenient base64 decode: accepts a data: URI prefix, line breaks, stray
    characters, url-safe alphabet and missing padding.
    """
    text = _DATA_URI_PREFIX.sub("", content.strip(), count=1)
    text = _NON_BASE64.sub("", text).translate(str.maketrans("-_", "+/"))
    if len(text) % 4 == 1:
        text = text[:-1]
    text += "=" * (-len(text) % 4)
    try:
        data = base64.b64decode(text)
    except (binascii.Error, ValueError) as e:
        raise InvalidPayload(f"file_content is not valid base64: {e}") from e
    if not data:
        raise InvalidPayload("file_content decoded to zero bytes")
    return data


def _resolve_url_name(url: str, declared_name: Optional[str]) -> str:
    if declared_name:
        return declared_name
    path_name = posixpath.basename(unquote(urlparse(url).path or ""))
    return path_name or f"downloaded_{time.time_ns()}.audio"


def _http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds, follow_redirects=True)


async def _write_inline(source: AudioSource, settings: Settings, ctx: Optional[Context]) -> AcquiredAudio:
    data = decode_inline_payload(source.inline_content)
    display_name = source.declared_name or "audio"
    tmp_path = _make_temp_path(settings, "upload", display_name)
    await _ctx_debug(ctx, f"Writing {len(data)} decoded bytes to {tmp_path}")
    try:
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(data)
    except OSError:
        _remove_quietly(tmp_path)
        raise
    return AcquiredAudio(path=tmp_path, display_name=display_name)


async def _download_to_temp(source: AudioSource, settings: Settings, ctx: Optional[Context]) -> AcquiredAudio:
    url = source.remote_url
    tmp_path: Optional[str] = None
    completed = False
    await _ctx_debug(ctx, f"Downloading audio from {url}")
    try:
        async with _http_client(settings) as client:
            async with client.stream("GET", url) as resp:
                if not resp.is_success:
                    await _ctx_error(ctx, f"HTTP error while downloading audio: {resp.status_code}")
                    raise FetchFailed(
                        f"Failed to download file from URL ({resp.status_code} {resp.reason_phrase})",
                        status_code=resp.status_code,
                    )

                declared_length = resp.headers.get("content-length", "")
                if declared_length.isdigit() and int(declared_length) > settings.max_file_size_bytes:
                    raise FileTooLarge(int(declared_length), settings.max_file_size_bytes)

                content_type = resp.headers.get("content-type")
                display_name = _resolve_url_name(url, source.declared_name)
                tmp_path = _make_temp_path(settings, "remote", display_name)
                async with aiofiles.open(tmp_path, "wb") as f:
                    async for chunk in resp.aiter_bytes():
                        await f.write(chunk)
        completed = True
    except McpError:
        raise
    except httpx.HTTPError as e:
        await _ctx_error(ctx, f"Error downloading audio: {e}")
        raise FetchFailed(f"Error downloading audio: {e}") from e
    finally:
        if not completed:
            _remove_quietly(tmp_path)

    return AcquiredAudio(path=tmp_path, display_name=display_name, content_type=content_type)


async def _pull_over_ssh(source: AudioSource, settings: Settings, ctx: Optional[Context]) -> AcquiredAudio:
    display_name = (
        source.declared_name
        or posixpath.basename(source.remote_path)
        or f"ssh_audio_{time.time_ns()}"
    )
    remote_spec = f"{source.remote_host}:{source.remote_path}"
    if source.remote_user:
        remote_spec = f"{source.remote_user}@{remote_spec}"

    tmp_path = _make_temp_path(settings, "ssh", display_name)
    cmd = [settings.scp_binary, "-B"]
    if source.remote_port:
        cmd += ["-P", str(source.remote_port)]
    cmd += [remote_spec, tmp_path]

    await _ctx_debug(ctx, f"Pulling {remote_spec} via scp")
    try:
        returncode, stderr = await _run_process(cmd)
    except OSError as e:
        _remove_quietly(tmp_path)
        await _ctx_error(ctx, f"scp could not be started: {e}")
        raise ToolUnavailable(settings.scp_binary) from e
    except BaseException:
        _remove_quietly(tmp_path)
        raise

    if returncode != 0:
        _remove_quietly(tmp_path)
        err_text = stderr.strip()[-1000:]
        await _ctx_error(ctx, f"scp failed: {err_text}")
        raise TransferFailed(f"scp failed with code {returncode}: {err_text}", stderr=err_text)

    return AcquiredAudio(path=tmp_path, display_name=display_name)


_ACQUIRERS = {
    SourceKind.INLINE: _write_inline,
    SourceKind.URL: _download_to_temp,
    SourceKind.REMOTE_HOST: _pull_over_ssh,
}


async def acquire(source: AudioSource, settings: Settings, ctx: Optional[Context] = None) -> AcquiredAudio:
    """Fetches the audio into a local temp file and applies the size ceiling."""
    kind = source.kind
    with tracer.start_as_current_span("audio.acquire") as span:
        span.set_attribute("source", kind.value)
        await _ctx_info(ctx, f"⬇️ Acquiring audio ({kind.value})")
        try:
            acquired = await _ACQUIRERS[kind](source, settings, ctx)
            size = _enforce_size_limit(acquired.path, settings)
        except McpError as e:
            AUDIO_ACQUISITIONS.labels(source=kind.value, status="error").inc()
            span.record_exception(e)
            raise

        AUDIO_ACQUISITIONS.labels(source=kind.value, status="success").inc()
        span.set_attribute("size_bytes", size)
        await _ctx_debug(ctx, f"Acquired {size} bytes as {acquired.display_name}")
        return acquired
