import pytest

from formats import UNKNOWN_MEDIA_TYPE, classify, is_natively_acceptable, normalize_content_type


@pytest.mark.parametrize(
    "name, expected",
    [
        ("note.mp3", "audio/mp3"),
        ("NOTE.WAV", "audio/wav"),
        ("memo.m4a", "audio/mp4"),
        ("call.opus", "audio/opus"),
        ("clip.webm", "audio/webm"),
        ("old.aif", "audio/aiff"),
        ("archive.zip", UNKNOWN_MEDIA_TYPE),
        ("no_extension", UNKNOWN_MEDIA_TYPE),
    ],
)
def test_classify_by_extension(name, expected):
    assert classify(name) == expected


def test_content_type_wins_over_extension():
    assert classify("download.bin", "audio/mpeg; charset=binary") == "audio/mpeg"
    assert classify("voice.m4a", "audio/x-wav") == "audio/wav"


def test_unknown_content_type_falls_back_to_extension():
    assert classify("voice.flac", "application/octet-stream") == "audio/flac"


def test_nothing_known():
    assert classify(None, None) == UNKNOWN_MEDIA_TYPE


def test_normalize_content_type():
    assert normalize_content_type(" Audio/Wave ") == "audio/wav"
    assert normalize_content_type("") is None
    assert normalize_content_type(None) is None


def test_native_types():
    for media_type in ("audio/wav", "audio/mp3", "audio/mpeg", "audio/aiff", "audio/aac", "audio/ogg", "audio/flac"):
        assert is_natively_acceptable(media_type)
    for media_type in ("audio/mp4", "audio/opus", "audio/webm", UNKNOWN_MEDIA_TYPE):
        assert not is_natively_acceptable(media_type)
