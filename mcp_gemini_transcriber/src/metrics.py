from prometheus_client import Counter, Histogram

TRANSCRIPTION_REQUESTS = Counter(
    "transcription_requests_total",
    "Total transcription tool calls",
    ["tool", "status"],
)
TRANSCRIPTION_DURATION = Histogram(
    "transcription_duration_seconds",
    "Histogram of end-to-end transcription duration",
    ["tool"],
)
AUDIO_ACQUISITIONS = Counter(
    "audio_acquisitions_total",
    "Audio inputs fetched to local temp files",
    ["source", "status"],
)
AUDIO_TRANSCODES = Counter(
    "audio_transcodes_total",
    "ffmpeg runs by operation",
    ["operation", "status"],
)
