"""
Media type detection for incoming audio.

``classify`` says what the file *is*; ``is_natively_acceptable`` says whether
Gemini takes it as-is. Anything not native goes through ffmpeg first.
"""

import os
from typing import Optional

UNKNOWN_MEDIA_TYPE = "audio/unknown"
COMPRESSED_MEDIA_TYPE = "audio/ogg"

EXTENSION_TO_MEDIA_TYPE = {
    ".mp3": "audio/mp3",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".aac": "audio/aac",
    ".aiff": "audio/aiff",
    ".aif": "audio/aiff",
    ".m4a": "audio/mp4",
    ".opus": "audio/opus",
    ".webm": "audio/webm",
    ".wma": "audio/x-ms-wma",
}

MEDIA_TYPE_SYNONYMS = {
    "audio/wave": "audio/wav",
    "audio/x-wav": "audio/wav",
    "audio/vnd.wave": "audio/wav",
    "audio/x-flac": "audio/flac",
    "audio/x-aiff": "audio/aiff",
    "audio/x-m4a": "audio/mp4",
    "audio/mpeg3": "audio/mpeg",
    "audio/x-mpeg": "audio/mpeg",
    "audio/x-mp3": "audio/mp3",
    "audio/x-aac": "audio/aac",
}

KNOWN_MEDIA_TYPES = set(EXTENSION_TO_MEDIA_TYPE.values()) | {"audio/mpeg"}

NATIVE_MEDIA_TYPES = frozenset({
    "audio/wav",
    "audio/mp3",
    "audio/mpeg",
    "audio/aiff",
    "audio/aac",
    "audio/ogg",
    "audio/flac",
})


def normalize_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    value = content_type.split(";", 1)[0].strip().lower()
    if not value:
        return None
    return MEDIA_TYPE_SYNONYMS.get(value, value)


def classify(declared_name: Optional[str] = None, content_type: Optional[str] = None) -> str:
    normalized = normalize_content_type(content_type)
    if normalized in KNOWN_MEDIA_TYPES:
        return normalized

    if declared_name:
        _, ext = os.path.splitext(declared_name)
        media_type = EXTENSION_TO_MEDIA_TYPE.get(ext.lower())
        if media_type:
            return media_type

    return UNKNOWN_MEDIA_TYPE


def is_natively_acceptable(media_type: str) -> bool:
    return media_type in NATIVE_MEDIA_TYPES
