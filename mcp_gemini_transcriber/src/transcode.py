"""
Audio preparation before upload, one strategy per tool mode:

 - STANDARD: native + small files pass through, everything else is compressed
 - FORCED_COMPRESSION: always compressed
 - VAD: silence stripped first (16 kHz PCM WAV -> speech spans), then compressed

Compression target is always mono / 16 kHz / Opus 24 kbps (voip) in Ogg.
"""

import asyncio
import os
import tempfile
import time
from typing import List, Optional

from fastmcp import Context
from opentelemetry import trace

from config import Settings
from errors import ToolUnavailable, TranscodeFailed
from formats import COMPRESSED_MEDIA_TYPE, classify, is_natively_acceptable
from metrics import AUDIO_TRANSCODES
from models import AcquiredAudio, AudioStrategy, PreparedAudio
from utils import _ctx_debug, _ctx_error, _ctx_info, _ctx_warning, _remove_quietly, _run_process
from vad import VadParameters, strip_silence

tracer = trace.get_tracer(__name__)

OPUS_ARGS = [
    "-vn",
    "-ac", "1",
    "-ar", "16000",
    "-c:a", "libopus",
    "-b:a", "24k",
    "-application", "voip",
]

PCM_WAV_ARGS = [
    "-vn",
    "-ac", "1",
    "-ar", "16000",
    "-acodec", "pcm_s16le",
    "-f", "wav",
]


def _temp_output(settings: Settings, prefix: str, suffix: str) -> str:
    fd, path = tempfile.mkstemp(prefix=f"{prefix}_{time.time_ns()}_", suffix=suffix, dir=settings.temp_dir)
    os.close(fd)
    return path


async def _run_ffmpeg(
    input_path: str,
    output_path: str,
    codec_args: List[str],
    operation: str,
    settings: Settings,
    ctx: Optional[Context],
) -> str:
    cmd = [settings.ffmpeg_binary, "-hide_banner", "-nostdin", "-y", "-i", input_path, *codec_args, output_path]
    try:
        returncode, stderr = await _run_process(cmd)
    except OSError as e:
        _remove_quietly(output_path)
        AUDIO_TRANSCODES.labels(operation=operation, status="error").inc()
        await _ctx_error(ctx, "ffmpeg not found in system")
        raise ToolUnavailable(settings.ffmpeg_binary) from e
    except BaseException:
        _remove_quietly(output_path)
        raise

    if returncode != 0:
        _remove_quietly(output_path)
        AUDIO_TRANSCODES.labels(operation=operation, status="error").inc()
        err_text = stderr.strip()[-1000:]
        await _ctx_error(ctx, f"ffmpeg failed: {err_text}")
        raise TranscodeFailed(f"ffmpeg failed with code {returncode}: {err_text}", stderr=err_text)

    AUDIO_TRANSCODES.labels(operation=operation, status="success").inc()
    return output_path


async def compress_to_opus(input_path: str, settings: Settings, ctx: Optional[Context] = None) -> str:
    """Mono 16 kHz Opus at 24 kbps; typically turns an hour of WAV into ~10MB."""
    await _ctx_info(ctx, "🗜️ Compressing audio to Ogg/Opus (mono, 16kHz, 24kbps)")
    output_path = _temp_output(settings, "gemini_converted", ".ogg")
    return await _run_ffmpeg(input_path, output_path, OPUS_ARGS, "compress", settings, ctx)


async def convert_to_pcm_wav(input_path: str, settings: Settings, ctx: Optional[Context] = None) -> str:
    await _ctx_debug(ctx, "Decoding audio to 16kHz mono PCM WAV for voice activity detection")
    output_path = _temp_output(settings, "vad_input", ".wav")
    return await _run_ffmpeg(input_path, output_path, PCM_WAV_ARGS, "pcm_wav", settings, ctx)


async def remove_silence(
    input_path: str,
    settings: Settings,
    ctx: Optional[Context] = None,
    params: VadParameters = VadParameters(),
) -> str:
    """
    Returns a WAV holding only the detected speech of ``input_path``.
    If no speech is detected, ``input_path`` itself is returned unchanged.
    """
    vad_input = await convert_to_pcm_wav(input_path, settings, ctx)
    cleaned_path = _temp_output(settings, "vad_cleaned", ".wav")
    try:
        span_count = await asyncio.to_thread(strip_silence, vad_input, cleaned_path, params)
    except Exception as e:
        _remove_quietly(cleaned_path)
        await _ctx_error(ctx, f"Voice activity detection failed: {e}")
        raise TranscodeFailed(f"Voice activity detection failed: {e}") from e
    except BaseException:
        _remove_quietly(cleaned_path)
        raise
    finally:
        _remove_quietly(vad_input)

    if span_count == 0:
        _remove_quietly(cleaned_path)
        await _ctx_warning(ctx, "No speech detected, keeping the original audio")
        return input_path

    await _ctx_debug(ctx, f"Kept {span_count} speech segments")
    return cleaned_path


async def _compressed(acquired: AcquiredAudio, settings: Settings, ctx: Optional[Context]) -> PreparedAudio:
    output_path = await compress_to_opus(acquired.path, settings, ctx)
    return PreparedAudio(
        local_path=output_path,
        media_type=COMPRESSED_MEDIA_TYPE,
        source_local_path=acquired.path,
    )


async def prepare(
    acquired: AcquiredAudio,
    strategy: AudioStrategy,
    settings: Settings,
    ctx: Optional[Context] = None,
) -> PreparedAudio:
    media_type = classify(acquired.display_name, acquired.content_type)
    size = os.path.getsize(acquired.path)

    with tracer.start_as_current_span("audio.prepare") as span:
        span.set_attribute("strategy", strategy.value)
        span.set_attribute("detected_media_type", media_type)
        span.set_attribute("size_bytes", size)

        if strategy is AudioStrategy.STANDARD:
            if not is_natively_acceptable(media_type):
                await _ctx_debug(ctx, f"{media_type} is not accepted by Gemini, converting")
                return await _compressed(acquired, settings, ctx)
            if size > settings.downsample_threshold_bytes:
                await _ctx_debug(ctx, f"{size} bytes exceeds downsample threshold, converting")
                return await _compressed(acquired, settings, ctx)
            await _ctx_debug(ctx, f"Uploading {media_type} as-is")
            return PreparedAudio(local_path=acquired.path, media_type=media_type, source_local_path=acquired.path)

        if strategy is AudioStrategy.FORCED_COMPRESSION:
            return await _compressed(acquired, settings, ctx)

        await _ctx_info(ctx, "🔇 Stripping silence with voice activity detection")
        speech_path = await remove_silence(acquired.path, settings, ctx)
        try:
            output_path = await compress_to_opus(speech_path, settings, ctx)
        finally:
            if speech_path != acquired.path:
                _remove_quietly(speech_path)
        return PreparedAudio(
            local_path=output_path,
            media_type=COMPRESSED_MEDIA_TYPE,
            source_local_path=acquired.path,
        )
