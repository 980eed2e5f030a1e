import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import numpy as np
import pytest
from fastmcp import Context

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import Settings  # noqa: E402

GEMINI_JSON = (
    '```json\n'
    '{"title": "Groceries and Errands", '
    '"description": "A reminder to buy bananas. Also a note about the dentist.", '
    '"transcript": "Tomorrow I need to buy bananas."}\n'
    '```'
)


class FakeGemini:
    """Stands in for genai.Client: only the aio.files / aio.models calls the session makes."""

    def __init__(self, states=("PROCESSING", "ACTIVE"), text=GEMINI_JSON):
        self.states = list(states)
        self.uploaded_paths = []

        async def upload(file, config):
            self.uploaded_paths.append(file)
            return SimpleNamespace(name="files/abc123", uri="https://generativelanguage.test/files/abc123",
                                   mime_type=config.mime_type, state="PROCESSING")

        async def get(name):
            state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
            return SimpleNamespace(name=name, uri="https://generativelanguage.test/files/abc123",
                                   mime_type=None, state=state)

        self.upload = AsyncMock(side_effect=upload)
        self.get = AsyncMock(side_effect=get)
        self.delete = AsyncMock(return_value=None)
        self.generate_content = AsyncMock(return_value=SimpleNamespace(text=text))
        self.aio = SimpleNamespace(
            files=SimpleNamespace(upload=self.upload, get=self.get, delete=self.delete),
            models=SimpleNamespace(generate_content=self.generate_content),
        )


class PeakDetector:
    """Stands in for webrtcvad.Vad: a sub-frame is speech when its peak exceeds ``threshold``."""

    def __init__(self, threshold=1000):
        self.threshold = threshold
        self.calls = []

    def is_speech(self, buf, sample_rate):
        self.calls.append((len(buf), sample_rate))
        return bool(np.abs(np.frombuffer(buf, dtype="<i2").astype(np.int32)).max() > self.threshold)


class SilentDetector:
    """Stands in for webrtcvad.Vad on audio that carries no voice at all."""

    def is_speech(self, buf, sample_rate):
        return False


@pytest.fixture
def ctx():
    return AsyncMock(spec=Context)


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def settings(temp_dir):
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        gemini_model="1",
        default_output_dir=None,
        temp_dir=str(temp_dir),
        poll_interval_seconds=0,
        poll_timeout_seconds=5,
    )


@pytest.fixture
def gemini():
    return FakeGemini()
