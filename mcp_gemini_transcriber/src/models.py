from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from errors import InvalidInput


class ToolName(str, Enum):
    TRANSCRIBE = "transcribe_audio"
    RAW = "transcribe_audio_raw"
    CUSTOM = "transcribe_audio_custom"
    FORMAT = "transcribe_audio_format"
    COMPRESSED = "transcribe_audio_compressed"
    DEVSPEC = "transcribe_audio_devspec"
    VAD = "transcribe_audio_vad"


class AudioStrategy(str, Enum):
    STANDARD = "standard"
    FORCED_COMPRESSION = "forced_compression"
    VAD = "vad"


class SourceKind(str, Enum):
    INLINE = "inline"
    URL = "url"
    REMOTE_HOST = "remote_host"


class FileProcessingState(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class AudioSource:
    """Where the audio comes from: inline base64, an HTTP(S) URL or a file on an SSH host.

    Exactly one of the three must be given, otherwise ``InvalidInput`` is raised
    before anything touches the network or spawns a process.
    """

    inline_content: Optional[str] = None
    remote_url: Optional[str] = None
    remote_host: Optional[str] = None
    remote_path: Optional[str] = None
    remote_user: Optional[str] = None
    remote_port: Optional[int] = None
    declared_name: Optional[str] = None

    def __post_init__(self):
        populated = [
            kind
            for kind, present in (
                (SourceKind.INLINE, bool(self.inline_content)),
                (SourceKind.URL, bool(self.remote_url)),
                (SourceKind.REMOTE_HOST, bool(self.remote_host or self.remote_path)),
            )
            if present
        ]
        if not populated:
            raise InvalidInput(
                "Missing required parameters: provide file_content (base64), file_url, or ssh_host + ssh_path"
            )
        if len(populated) > 1:
            names = ", ".join(k.value for k in populated)
            raise InvalidInput(f"Provide exactly one audio source, got: {names}")

        if populated[0] is SourceKind.REMOTE_HOST:
            if not self.remote_host or not self.remote_path:
                raise InvalidInput("ssh_host and ssh_path must be provided together")
            # would be parsed by scp as an option
            if self.remote_host.startswith("-") or (self.remote_user or "").startswith("-"):
                raise InvalidInput("ssh_host and ssh_user must not start with '-'")
            host, port = self.remote_host, self.remote_port
            # "host:2222" form
            if port is None and ":" in host:
                name, _, maybe_port = host.rpartition(":")
                if maybe_port.isdigit() and name:
                    host, port = name, int(maybe_port)
            if port is not None and not 0 < port < 65536:
                raise InvalidInput(f"Invalid ssh_port: {port}")
            object.__setattr__(self, "remote_host", host)
            object.__setattr__(self, "remote_port", port)
        elif self.remote_user or self.remote_port:
            raise InvalidInput("ssh_user and ssh_port are only valid together with ssh_host + ssh_path")

    @property
    def kind(self) -> SourceKind:
        if self.inline_content:
            return SourceKind.INLINE
        if self.remote_url:
            return SourceKind.URL
        return SourceKind.REMOTE_HOST


@dataclass(frozen=True)
class AcquiredAudio:
    path: str
    display_name: str
    content_type: Optional[str] = None


@dataclass(frozen=True)
class PreparedAudio:
    local_path: str
    media_type: str
    source_local_path: str
    requires_cleanup: bool = True


@dataclass
class RemoteFileHandle:
    remote_name: str
    remote_uri: str
    mime_type: str
    state: FileProcessingState = FileProcessingState.UPLOADING


@dataclass(frozen=True)
class ToolInvocation:
    tool: ToolName
    source: AudioSource
    custom_prompt: Optional[str] = None
    format_label: Optional[str] = None
    output_dir: Optional[str] = None
    raw: bool = False


class TranscriptionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    transcript: str
    timestamp: str
    timestamp_readable: str
    format_applied: Optional[str] = None
    saved_to: Optional[str] = None

    def to_response(self) -> dict:
        return self.model_dump(exclude_none=True)
