"""McpError subclasses raised by the transcription pipeline.

Every class carries a fixed JSON-RPC error code, so callers can still
``except McpError`` exactly like the rest of the server does.
"""

import math

from mcp.shared.exceptions import ErrorData, McpError


def _whole_mb(size_bytes: int) -> int:
    # halves round up
    return math.floor(size_bytes / (1024 * 1024) + 0.5)


class TranscriberError(McpError):
    code = -32603

    def __init__(self, message: str):
        super().__init__(ErrorData(code=self.code, message=message))

    @property
    def message(self) -> str:
        return self.error.message


class InvalidInput(TranscriberError):
    code = -32602


class InvalidPayload(InvalidInput):
    pass


class ConfigurationError(InvalidInput):
    pass


class FetchFailed(TranscriberError):
    code = -32001

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class TransferFailed(TranscriberError):
    code = -32003

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class FileTooLarge(TranscriberError):
    code = -32004

    def __init__(self, size_bytes: int, max_bytes: int):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"File too large ({_whole_mb(size_bytes)}MB). "
            f"Maximum size is {_whole_mb(max_bytes)}MB."
        )


class TranscodeFailed(TranscriberError):
    code = -32010

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class ToolUnavailable(TranscriberError):
    code = -32011

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Required tool '{tool}' is not installed or could not be started")


class RemoteApiError(TranscriberError):
    code = -32050


class RemoteProcessingFailed(TranscriberError):
    code = -32064


class RemoteProcessingTimeout(TranscriberError):
    code = -32065


class EmptyResponse(TranscriberError):
    code = -32070
