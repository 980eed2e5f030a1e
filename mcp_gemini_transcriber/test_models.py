import pytest

from errors import InvalidInput
from models import AudioSource, SourceKind, TranscriptionResult


def test_inline_source():
    source = AudioSource(inline_content="UklGRg==", declared_name="note.wav")
    assert source.kind is SourceKind.INLINE


def test_url_source():
    assert AudioSource(remote_url="https://example.com/a.mp3").kind is SourceKind.URL


def test_ssh_source_with_port_in_host():
    source = AudioSource(remote_host="recorder.local:2222", remote_path="/rec/a.wav", remote_user="pi")
    assert source.kind is SourceKind.REMOTE_HOST
    assert source.remote_host == "recorder.local"
    assert source.remote_port == 2222


def test_explicit_port_is_kept():
    source = AudioSource(remote_host="recorder.local", remote_path="/rec/a.wav", remote_port=2200)
    assert source.remote_port == 2200


def test_missing_source():
    with pytest.raises(InvalidInput) as exc:
        AudioSource(declared_name="note.wav")
    assert exc.value.error.code == -32602
    assert "file_content (base64), file_url, or ssh_host + ssh_path" in exc.value.message


def test_two_sources_rejected():
    with pytest.raises(InvalidInput, match="exactly one"):
        AudioSource(inline_content="UklGRg==", remote_url="https://example.com/a.mp3")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"remote_host": "recorder.local"},
        {"remote_path": "/rec/a.wav"},
        {"remote_host": "-oProxyCommand=x", "remote_path": "/rec/a.wav"},
        {"remote_host": "recorder.local", "remote_path": "/rec/a.wav", "remote_user": "-F"},
        {"remote_host": "recorder.local", "remote_path": "/rec/a.wav", "remote_port": 70000},
        {"remote_url": "https://example.com/a.mp3", "remote_user": "pi"},
    ],
)
def test_invalid_ssh_combinations(kwargs):
    with pytest.raises(InvalidInput):
        AudioSource(**kwargs)


def test_result_response_omits_unset_fields():
    result = TranscriptionResult(
        title="T", description="D", transcript="X",
        timestamp="2025-11-27T16:58:03.120Z", timestamp_readable="27 Nov 2025 16:58",
    )
    response = result.to_response()
    assert "format_applied" not in response
    assert "saved_to" not in response
    assert response["transcript"] == "X"
