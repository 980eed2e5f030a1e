"""
One Gemini Files API round-trip per tool call:

 - upload the prepared audio -> file handle (UPLOADING -> PROCESSING)
 - poll files.get every poll_interval_seconds until ACTIVE or FAILED
 - generate_content with the file reference + instruction
 - delete the uploaded file, always, ignoring errors
"""

import asyncio
import time
from typing import Any, Optional

from fastmcp import Context
from google import genai
from google.genai import types
from mcp.shared.exceptions import McpError
from opentelemetry import trace

from config import Settings
from errors import EmptyResponse, RemoteApiError, RemoteProcessingFailed, RemoteProcessingTimeout
from models import FileProcessingState, RemoteFileHandle
from utils import _ctx_debug, _ctx_error, _ctx_info

tracer = trace.get_tracer(__name__)

_REMOTE_STATES = {
    "ACTIVE": FileProcessingState.READY,
    "FAILED": FileProcessingState.FAILED,
    "PROCESSING": FileProcessingState.PROCESSING,
    "STATE_UNSPECIFIED": FileProcessingState.PROCESSING,
}


_client: Optional[genai.Client] = None


def create_client(settings: Settings) -> genai.Client:
    return genai.Client(api_key=settings.gemini_api_key)


def get_client(settings: Settings) -> genai.Client:
    """The process-wide client, built on first use and shared by every request."""
    global _client
    if _client is None:
        _client = create_client(settings)
    return _client


def _map_state(remote_state: Any) -> FileProcessingState:
    raw = getattr(remote_state, "value", remote_state)
    return _REMOTE_STATES.get(str(raw or "STATE_UNSPECIFIED").upper(), FileProcessingState.PROCESSING)


class TranscriptionSession:
    """Owns a single uploaded file. Not reusable across requests."""

    def __init__(self, client: genai.Client, settings: Settings, ctx: Optional[Context] = None):
        self._client = client
        self._settings = settings
        self._ctx = ctx
        self._handle: Optional[RemoteFileHandle] = None
        self._used = False

    @property
    def handle(self) -> Optional[RemoteFileHandle]:
        return self._handle

    async def submit(self, local_path: str, media_type: str) -> RemoteFileHandle:
        if self._used:
            raise RuntimeError("TranscriptionSession is single-use")
        self._used = True

        await _ctx_info(self._ctx, "📤 Uploading audio to Gemini")
        handle = RemoteFileHandle(remote_name="", remote_uri="", mime_type=media_type)
        try:
            uploaded = await self._client.aio.files.upload(
                file=local_path,
                config=types.UploadFileConfig(
                    mime_type=media_type,
                    display_name=f"transcription_{time.time_ns()}",
                ),
            )
        except McpError:
            raise
        except Exception as e:
            await _ctx_error(self._ctx, f"Gemini upload failed: {e}")
            raise RemoteApiError(f"Gemini upload failed: {e}") from e

        handle.remote_name = uploaded.name
        handle.remote_uri = uploaded.uri or ""
        handle.mime_type = uploaded.mime_type or media_type
        handle.state = FileProcessingState.PROCESSING
        self._handle = handle
        await _ctx_debug(self._ctx, f"Uploaded file: {handle.remote_name}")
        return handle

    async def await_ready(self, handle: RemoteFileHandle) -> RemoteFileHandle:
        interval = self._settings.poll_interval_seconds
        timeout = self._settings.poll_timeout_seconds
        started = time.monotonic()

        await _ctx_info(self._ctx, "⏳ Waiting for Gemini to process the file")
        while True:
            try:
                remote = await self._client.aio.files.get(name=handle.remote_name)
            except Exception as e:
                await _ctx_error(self._ctx, f"Gemini status check failed: {e}")
                raise RemoteApiError(f"Gemini status check failed: {e}") from e
            handle.state = _map_state(remote.state)
            handle.remote_uri = remote.uri or handle.remote_uri
            handle.mime_type = remote.mime_type or handle.mime_type

            if handle.state is FileProcessingState.READY:
                return handle
            if handle.state is FileProcessingState.FAILED:
                await _ctx_error(self._ctx, f"Gemini failed to process {handle.remote_name}")
                raise RemoteProcessingFailed("File processing failed in Gemini")
            if timeout > 0 and time.monotonic() - started >= timeout:
                raise RemoteProcessingTimeout(
                    f"Gemini did not finish processing {handle.remote_name} within {timeout:g} seconds"
                )
            await asyncio.sleep(interval)

    async def generate(self, handle: RemoteFileHandle, instruction: str) -> str:
        await _ctx_info(self._ctx, f"🧠 Generating transcript with {self._settings.model_name}")
        try:
            response = await self._client.aio.models.generate_content(
                model=self._settings.model_name,
                contents=[
                    types.Part.from_uri(file_uri=handle.remote_uri, mime_type=handle.mime_type),
                    instruction,
                ],
            )
        except McpError:
            raise
        except Exception as e:
            await _ctx_error(self._ctx, f"Gemini generation failed: {e}")
            raise RemoteApiError(f"Gemini generation failed: {e}") from e

        text = response.text
        if not text or not text.strip():
            raise EmptyResponse("No text response from Gemini")
        return text

    async def release(self, handle: Optional[RemoteFileHandle]) -> None:
        if handle is None or not handle.remote_name:
            return
        try:
            await self._client.aio.files.delete(name=handle.remote_name)
            await _ctx_debug(self._ctx, f"Deleted uploaded file {handle.remote_name}")
        except Exception as e:
            await _ctx_debug(self._ctx, f"Ignoring failed delete of {handle.remote_name}: {e}")

    async def transcribe(self, local_path: str, media_type: str, instruction: str) -> str:
        with tracer.start_as_current_span("gemini.transcribe") as span:
            span.set_attribute("model", self._settings.model_name)
            span.set_attribute("media_type", media_type)
            handle = await self.submit(local_path, media_type)
            try:
                await self.await_ready(handle)
                return await self.generate(handle, instruction)
            finally:
                await self.release(handle)
