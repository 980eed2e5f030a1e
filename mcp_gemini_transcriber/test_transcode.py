import os
from unittest.mock import AsyncMock

import numpy as np
import pytest

import transcode
import vad
from conftest import PeakDetector
from errors import ToolUnavailable, TranscodeFailed
from models import AcquiredAudio, AudioStrategy
from transcode import prepare, remove_silence
from vad import write_wav


def _acquired(temp_dir, name, size=1024, content_type=None):
    path = temp_dir / f"gemini_upload_{name}"
    path.write_bytes(b"\x00" * size)
    return AcquiredAudio(path=str(path), display_name=name, content_type=content_type)


def _tone_with_silence():
    t = np.arange(16000) / 16000
    tone = 0.5 * np.sin(2 * np.pi * 440 * t)
    return np.concatenate([np.zeros(16000), tone, np.zeros(16000)]).astype(np.float32)


def _fake_ffmpeg(pcm_samples=None):
    """Writes a plausible output for each ffmpeg call; WAV decodes get ``pcm_samples``."""
    async def run(cmd):
        output = cmd[-1]
        if "pcm_s16le" in cmd:
            write_wav(output, pcm_samples if pcm_samples is not None else np.zeros(16000, dtype=np.float32))
        else:
            with open(output, "wb") as f:
                f.write(b"OggS" + b"\x00" * 32)
        return 0, ""
    return AsyncMock(side_effect=run)


@pytest.mark.asyncio
async def test_small_native_file_is_uploaded_as_is(monkeypatch, settings, temp_dir, ctx):
    run = _fake_ffmpeg()
    monkeypatch.setattr(transcode, "_run_process", run)
    acquired = _acquired(temp_dir, "note.wav", size=5 * 1024 * 1024)

    prepared = await prepare(acquired, AudioStrategy.STANDARD, settings, ctx)

    run.assert_not_awaited()
    assert prepared.local_path == acquired.path
    assert prepared.source_local_path == acquired.path
    assert prepared.media_type == "audio/wav"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["memo.m4a", "clip.webm", "call.opus", "mystery.bin"])
async def test_non_native_file_is_always_compressed(monkeypatch, settings, temp_dir, name):
    run = _fake_ffmpeg()
    monkeypatch.setattr(transcode, "_run_process", run)
    acquired = _acquired(temp_dir, name, size=2048)

    prepared = await prepare(acquired, AudioStrategy.STANDARD, settings)

    cmd = run.await_args.args[0]
    assert cmd[:6] == ["ffmpeg", "-hide_banner", "-nostdin", "-y", "-i", acquired.path]
    assert cmd[6:-1] == transcode.OPUS_ARGS
    assert prepared.local_path.endswith(".ogg")
    assert prepared.media_type == "audio/ogg"
    assert prepared.source_local_path == acquired.path


@pytest.mark.asyncio
async def test_large_native_file_is_compressed(monkeypatch, settings, temp_dir):
    monkeypatch.setattr(transcode, "_run_process", _fake_ffmpeg())
    small_threshold = settings.model_copy(update={"downsample_threshold_bytes": 1000})
    acquired = _acquired(temp_dir, "long.mp3", size=1001)

    prepared = await prepare(acquired, AudioStrategy.STANDARD, small_threshold)

    assert prepared.local_path != acquired.path
    assert prepared.media_type == "audio/ogg"


@pytest.mark.asyncio
async def test_forced_compression_compresses_native_files(monkeypatch, settings, temp_dir):
    run = _fake_ffmpeg()
    monkeypatch.setattr(transcode, "_run_process", run)
    acquired = _acquired(temp_dir, "note.wav")

    prepared = await prepare(acquired, AudioStrategy.FORCED_COMPRESSION, settings)

    run.assert_awaited_once()
    assert prepared.media_type == "audio/ogg"


@pytest.mark.asyncio
async def test_ffmpeg_failure(monkeypatch, settings, temp_dir, ctx):
    monkeypatch.setattr(transcode, "_run_process", AsyncMock(return_value=(1, "Invalid data found\n")))
    acquired = _acquired(temp_dir, "memo.m4a")

    with pytest.raises(TranscodeFailed) as exc:
        await prepare(acquired, AudioStrategy.STANDARD, settings, ctx)

    assert exc.value.error.code == -32010
    assert "Invalid data found" in exc.value.message
    assert os.listdir(temp_dir) == [os.path.basename(acquired.path)]


@pytest.mark.asyncio
async def test_ffmpeg_missing(monkeypatch, settings, temp_dir):
    monkeypatch.setattr(transcode, "_run_process", AsyncMock(side_effect=FileNotFoundError("ffmpeg")))

    with pytest.raises(ToolUnavailable) as exc:
        await prepare(_acquired(temp_dir, "memo.m4a"), AudioStrategy.STANDARD, settings)
    assert exc.value.error.code == -32011


@pytest.mark.asyncio
async def test_vad_without_speech_keeps_original(monkeypatch, settings, temp_dir, ctx):
    monkeypatch.setattr(transcode, "_run_process", _fake_ffmpeg())
    acquired = _acquired(temp_dir, "silence.wav")

    result = await remove_silence(acquired.path, settings, ctx)

    assert result == acquired.path
    assert os.listdir(temp_dir) == [os.path.basename(acquired.path)]


@pytest.mark.asyncio
async def test_vad_strategy_strips_then_compresses(monkeypatch, settings, temp_dir):
    monkeypatch.setattr(vad, "_make_detector", lambda params: PeakDetector())
    run = _fake_ffmpeg(_tone_with_silence())
    monkeypatch.setattr(transcode, "_run_process", run)
    acquired = _acquired(temp_dir, "dictation.mp3")

    prepared = await prepare(acquired, AudioStrategy.VAD, settings)

    decode_cmd, compress_cmd = [call.args[0] for call in run.await_args_list]
    assert "pcm_s16le" in decode_cmd
    assert compress_cmd[5] not in (acquired.path, decode_cmd[-1])
    assert prepared.media_type == "audio/ogg"
    assert prepared.source_local_path == acquired.path
    # only the acquired file and the compressed upload remain
    assert sorted(os.listdir(temp_dir)) == sorted(
        [os.path.basename(acquired.path), os.path.basename(prepared.local_path)]
    )


@pytest.mark.asyncio
async def test_vad_strategy_on_silence_compresses_original(monkeypatch, settings, temp_dir):
    run = _fake_ffmpeg()
    monkeypatch.setattr(transcode, "_run_process", run)
    acquired = _acquired(temp_dir, "silence.wav")

    prepared = await prepare(acquired, AudioStrategy.VAD, settings)

    compress_cmd = run.await_args_list[-1].args[0]
    assert compress_cmd[5] == acquired.path
    assert prepared.local_path.endswith(".ogg")
