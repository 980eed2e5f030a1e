import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

import utils
from utils import _run_process


def _fake_proc(communicate):
    proc = MagicMock()
    proc.returncode = None
    proc.communicate = communicate
    proc.wait = AsyncMock(return_value=-9)
    return proc


@pytest.mark.asyncio
async def test_run_process_returns_code_and_stderr(monkeypatch):
    proc = _fake_proc(AsyncMock(return_value=(None, b"Output #0, ogg\n")))
    proc.returncode = 0
    monkeypatch.setattr(utils.asyncio, "create_subprocess_exec", AsyncMock(return_value=proc))

    assert await _run_process(["ffmpeg", "-i", "in.m4a", "out.ogg"]) == (0, "Output #0, ogg\n")


@pytest.mark.asyncio
async def test_cancelled_run_kills_and_reaps_child(monkeypatch):
    proc = _fake_proc(AsyncMock(side_effect=asyncio.CancelledError))
    monkeypatch.setattr(utils.asyncio, "create_subprocess_exec", AsyncMock(return_value=proc))

    with pytest.raises(asyncio.CancelledError):
        await _run_process(["ffmpeg", "-i", "in.m4a", "out.ogg"])

    proc.kill.assert_called_once()
    proc.wait.assert_awaited_once()


@pytest.mark.asyncio
async def test_spawn_failure_propagates(monkeypatch):
    monkeypatch.setattr(utils.asyncio, "create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("scp")))

    with pytest.raises(FileNotFoundError):
        await _run_process(["scp", "a", "b"])
