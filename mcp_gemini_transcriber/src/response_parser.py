import json
import re
from typing import Any, Dict

FALLBACK_TITLE = "Voice Note"
FALLBACK_DESCRIPTION = "Transcribed voice note."

RESPONSE_FIELDS = ("title", "description", "transcript", "format_applied")

_LEADING_FENCE = re.compile(r"^```[\w+.-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?```$")


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_response(raw_text: str) -> Dict[str, Any]:
    """
    Reads Gemini's answer as the JSON object the prompts ask for.

    Fields missing from a valid object stay missing. If the answer is not a
    JSON object at all, the whole raw text becomes the transcript under a
    generic title and description, so a non-compliant model never fails the call.
    """
    try:
        parsed = json.loads(strip_code_fence(raw_text))
    except ValueError:
        parsed = None

    if not isinstance(parsed, dict):
        return {
            "title": FALLBACK_TITLE,
            "description": FALLBACK_DESCRIPTION,
            "transcript": raw_text,
        }

    return {key: parsed[key] for key in RESPONSE_FIELDS if isinstance(parsed.get(key), str)}
