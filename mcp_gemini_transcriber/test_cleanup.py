import base64
import os

import pytest

from cleanup import cleanup_prepared_audio, prepared_audio
from models import AudioSource, AudioStrategy, PreparedAudio


def test_cleanup_removes_both_files(tmp_path):
    source = tmp_path / "in.m4a"
    upload = tmp_path / "out.ogg"
    source.write_bytes(b"a")
    upload.write_bytes(b"b")

    cleanup_prepared_audio(PreparedAudio(str(upload), "audio/ogg", str(source)))

    assert os.listdir(tmp_path) == []


def test_cleanup_tolerates_missing_files(tmp_path):
    cleanup_prepared_audio(PreparedAudio(str(tmp_path / "gone.ogg"), "audio/ogg", str(tmp_path / "gone.m4a")))


def test_cleanup_respects_requires_cleanup(tmp_path):
    keep = tmp_path / "keep.wav"
    keep.write_bytes(b"a")

    cleanup_prepared_audio(PreparedAudio(str(keep), "audio/wav", str(keep), requires_cleanup=False))

    assert keep.exists()


@pytest.mark.asyncio
async def test_prepared_audio_removes_file_when_body_raises(settings, temp_dir, ctx):
    source = AudioSource(inline_content=base64.b64encode(b"RIFF" * 10).decode(), declared_name="n.wav")

    with pytest.raises(RuntimeError):
        async with prepared_audio(source, AudioStrategy.STANDARD, settings, ctx) as audio:
            assert os.path.exists(audio.local_path)
            raise RuntimeError("boom")

    assert os.listdir(temp_dir) == []
