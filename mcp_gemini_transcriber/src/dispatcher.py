"""
Tool name -> (audio strategy, instruction, post-processing).

The tools in tools.py only translate MCP arguments into a ToolInvocation;
everything that differs between them is decided here.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastmcp import Context
from google import genai

from cleanup import prepared_audio
from config import Settings
from errors import InvalidInput
from gemini_session import TranscriptionSession, get_client
from models import AudioStrategy, ToolInvocation, ToolName, TranscriptionResult
from prompts import DEVSPEC_PROMPT, RAW_TRANSCRIPTION_PROMPT, TRANSCRIPTION_PROMPT, generate_format_prompt
from response_parser import FALLBACK_DESCRIPTION, FALLBACK_TITLE, parse_response
from transcript_store import resolve_output_dir, save_transcript
from utils import _ctx_debug, _ctx_info, _ctx_progress, _require_settings

TOOL_STRATEGIES = {
    ToolName.TRANSCRIBE: AudioStrategy.STANDARD,
    ToolName.RAW: AudioStrategy.STANDARD,
    ToolName.CUSTOM: AudioStrategy.STANDARD,
    ToolName.FORMAT: AudioStrategy.STANDARD,
    ToolName.COMPRESSED: AudioStrategy.FORCED_COMPRESSION,
    ToolName.DEVSPEC: AudioStrategy.STANDARD,
    ToolName.VAD: AudioStrategy.VAD,
}


def validate_invocation(invocation: ToolInvocation) -> None:
    if invocation.tool is ToolName.CUSTOM and not (invocation.custom_prompt or "").strip():
        raise InvalidInput("Missing required parameter: custom_prompt is required for transcribe_audio_custom")
    if invocation.tool is ToolName.FORMAT and not (invocation.format_label or "").strip():
        raise InvalidInput("Missing required parameter: format is required for transcribe_audio_format")


def select_instruction(invocation: ToolInvocation) -> str:
    tool = invocation.tool
    if tool is ToolName.RAW:
        return RAW_TRANSCRIPTION_PROMPT
    if tool is ToolName.CUSTOM:
        return invocation.custom_prompt
    if tool is ToolName.FORMAT:
        return generate_format_prompt(invocation.format_label)
    if tool is ToolName.DEVSPEC:
        return DEVSPEC_PROMPT
    if tool is ToolName.VAD and invocation.raw:
        return RAW_TRANSCRIPTION_PROMPT
    return TRANSCRIPTION_PROMPT


def format_timestamp(now: Optional[datetime] = None) -> Tuple[str, str]:
    """ISO-8601 UTC ("2025-11-27T16:58:03.120Z") and local readable ("27 Nov 2025 16:58")."""
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    local = now.astimezone()
    readable = f"{local.day} {local:%b %Y %H:%M}"
    return iso, readable


def build_result(parsed: Dict[str, Any], raw_text: str, invocation: ToolInvocation) -> TranscriptionResult:
    iso, readable = format_timestamp()
    format_applied = None
    if invocation.tool is ToolName.FORMAT:
        format_applied = parsed.get("format_applied") or invocation.format_label.strip()
    return TranscriptionResult(
        title=parsed.get("title") or FALLBACK_TITLE,
        description=parsed.get("description") or FALLBACK_DESCRIPTION,
        transcript=parsed.get("transcript") or raw_text,
        format_applied=format_applied,
        timestamp=iso,
        timestamp_readable=readable,
    )


async def dispatch(
    invocation: ToolInvocation,
    settings: Settings,
    ctx: Optional[Context] = None,
    client: Optional[genai.Client] = None,
) -> TranscriptionResult:
    validate_invocation(invocation)
    _require_settings(settings)

    strategy = TOOL_STRATEGIES[invocation.tool]
    instruction = select_instruction(invocation)
    client = client or get_client(settings)
    await _ctx_debug(ctx, f"{invocation.tool.value}: strategy={strategy.value}, model={settings.model_name}")

    async with prepared_audio(invocation.source, strategy, settings, ctx) as audio:
        await _ctx_progress(ctx, 30)
        session = TranscriptionSession(client, settings, ctx)
        raw_text = await session.transcribe(audio.local_path, audio.media_type, instruction)
        await _ctx_progress(ctx, 85)
        parsed = parse_response(raw_text)

    result = build_result(parsed, raw_text, invocation)

    output_dir = resolve_output_dir(invocation.output_dir, settings.default_output_dir)
    if output_dir:
        saved_to = await save_transcript(result, output_dir)
        await _ctx_info(ctx, f"💾 Transcript saved to {saved_to}")
        result = result.model_copy(update={"saved_to": saved_to})

    return result
