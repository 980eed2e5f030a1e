# mcp_gemini_transcriber/src/tools.py
"""
MCP tools: transcribe audio with the Gemini multimodal API.

Flow (per call):
 - take the audio from base64 content, an HTTP(S) URL or an SSH host (scp)
 - enforce the 100MB ceiling
 - convert / compress / strip silence via ffmpeg depending on the tool
 - upload to the Gemini Files API -> poll until ACTIVE
 - generate_content with the tool's instruction
 - delete the uploaded file and every local temp file
 - parse the JSON answer -> title / description / transcript (+ timestamps)
 - optionally save as Markdown into output_dir (or TRANSCRIPT_OUTPUT_DIR)
 - return ToolResult(structured_content=result)
"""

import json
import time
from typing import Optional

from fastmcp import Context
from mcp.shared.exceptions import ErrorData, McpError
from mcp.types import TextContent
from opentelemetry import trace
from pydantic import Field

from config import settings
from dispatcher import dispatch
from mcp_instance import mcp
from metrics import TRANSCRIPTION_DURATION, TRANSCRIPTION_REQUESTS
from models import AudioSource, ToolInvocation, ToolName
from utils import ToolResult, _ctx_error, _ctx_info, _ctx_progress

tracer = trace.get_tracer(__name__)

_SUPPORTED = "Supports MP3, WAV, OGG, FLAC, AAC and AIFF natively; other formats (M4A, Opus, WebM, ...) are converted with ffmpeg."

FILE_CONTENT = Field(None, description="Base64-encoded content of the audio file to transcribe (provide this OR file_url OR ssh_host + ssh_path)")
FILE_URL = Field(None, description="HTTP(S) URL where the audio file can be fetched (provide this OR file_content OR ssh_host + ssh_path)")
SSH_HOST = Field(None, description="SSH host (and optional port, e.g. host:2222) to pull the audio file from. Provide with ssh_path.")
SSH_PATH = Field(None, description="Remote file path on the SSH host. Provide with ssh_host.")
SSH_USER = Field(None, description="Optional SSH username when pulling the file.")
SSH_PORT = Field(None, description="Optional SSH port when pulling the file.")
FILE_NAME = Field(None, description="Optional name of the audio file, including the extension. Helpful when using URLs without a filename.")
OUTPUT_DIR = Field(None, description="Optional directory where the transcript is saved as a Markdown file named after its title.")


async def _run_tool(
    tool: ToolName,
    ctx: Optional[Context],
    *,
    file_content: Optional[str],
    file_url: Optional[str],
    ssh_host: Optional[str],
    ssh_path: Optional[str],
    ssh_user: Optional[str],
    ssh_port: Optional[int],
    file_name: Optional[str],
    output_dir: Optional[str],
    custom_prompt: Optional[str] = None,
    format_label: Optional[str] = None,
    raw: bool = False,
) -> ToolResult:
    start_time = time.time()
    status_label = "error"
    await _ctx_info(ctx, f"🚀 Starting {tool.value}")
    await _ctx_progress(ctx, 0)

    try:
        with tracer.start_as_current_span(f"transcriber.{tool.value}") as span:
            span.set_attribute("tool", tool.value)
            invocation = ToolInvocation(
                tool=tool,
                source=AudioSource(
                    inline_content=file_content,
                    remote_url=file_url,
                    remote_host=ssh_host,
                    remote_path=ssh_path,
                    remote_user=ssh_user,
                    remote_port=ssh_port,
                    declared_name=file_name,
                ),
                custom_prompt=custom_prompt,
                format_label=format_label,
                output_dir=output_dir,
                raw=raw,
            )
            span.set_attribute("source", invocation.source.kind.value)

            result = await dispatch(invocation, settings, ctx)
            response = result.to_response()

            await _ctx_progress(ctx, 100)
            await _ctx_info(ctx, "✅ Transcription completed")
            span.set_attribute("transcript_chars", len(result.transcript))
            span.set_attribute("saved", result.saved_to is not None)
            status_label = "success"

            return ToolResult(
                content=[TextContent(type="text", text=json.dumps(response, indent=2, ensure_ascii=False))],
                structured_content=response,
            )
    except McpError as e:
        await _ctx_error(ctx, f"Transcription failed: {e.error.message}")
        raise
    except Exception as e:
        await _ctx_error(ctx, f"Unexpected error in transcription: {e}")
        raise McpError(ErrorData(code=-32099, message=f"Unexpected error: {e}"))
    finally:
        TRANSCRIPTION_DURATION.labels(tool=tool.value).observe(time.time() - start_time)
        TRANSCRIPTION_REQUESTS.labels(tool=tool.value, status=status_label).inc()


@mcp.tool(
    name=ToolName.TRANSCRIBE.value,
    description=(
        "Transcribes an audio file using Google Gemini multimodal API. Returns a lightly edited transcript with "
        "filler words removed, verbal corrections applied, punctuation added, and paragraph breaks inserted. "
        "Includes metadata (title, description, timestamps). " + _SUPPORTED + " This is the recommended tool for most use cases."
    ),
)
async def transcribe_audio(
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.TRANSCRIBE, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
    )


@mcp.tool(
    name=ToolName.RAW.value,
    description=(
        "Transcribes an audio file using Google Gemini multimodal API. Returns a verbatim transcript with NO cleanup - "
        "includes filler words, false starts, and repetitions exactly as spoken. Includes metadata (title, description, "
        "timestamps). " + _SUPPORTED + " Use this when you need exact speech-to-text without editing."
    ),
)
async def transcribe_audio_raw(
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.RAW, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
    )


@mcp.tool(
    name=ToolName.CUSTOM.value,
    description=(
        "Transcribes an audio file using Google Gemini multimodal API with a user-defined custom prompt. Provides full "
        "control over how Gemini processes and formats the transcription. Use this when you need specific transcription "
        "instructions not covered by other tools."
    ),
)
async def transcribe_audio_custom(
    custom_prompt: str = Field(
        ...,
        description=(
            "The custom prompt/instructions to send to Gemini along with the audio. The prompt should instruct "
            'Gemini to return JSON with at minimum a "transcript" field.'
        ),
    ),
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.CUSTOM, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
        custom_prompt=custom_prompt,
    )


@mcp.tool(
    name=ToolName.FORMAT.value,
    description=(
        'Transcribes an audio file and formats it according to a specified output format (e.g., "email", '
        '"to-do list", "meeting notes", "technical document", "blog post"). Use this when you want the transcription '
        "structured in a specific document format."
    ),
)
async def transcribe_audio_format(
    format: str = Field(
        ...,
        description=(
            'The desired output format. Examples: "email", "to-do list", "meeting notes", "technical document", '
            '"blog post", "executive summary", "letter", "report", "outline". Any format description is accepted.'
        ),
    ),
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.FORMAT, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
        format_label=format,
    )


@mcp.tool(
    name=ToolName.COMPRESSED.value,
    description=(
        "Transcribes an audio file after always compressing it to mono 16kHz Opus (24kbps). Use this for long or "
        "large recordings that would otherwise exceed Gemini's upload limits. Returns the same lightly edited "
        "transcript and metadata as transcribe_audio."
    ),
)
async def transcribe_audio_compressed(
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.COMPRESSED, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
    )


@mcp.tool(
    name=ToolName.DEVSPEC.value,
    description=(
        "Transcribes a voice note describing software to build and returns it as a structured development "
        "specification (overview, requirements, technical constraints, user experience, open questions)."
    ),
)
async def transcribe_audio_devspec(
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.DEVSPEC, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
    )


@mcp.tool(
    name=ToolName.VAD.value,
    description=(
        "Transcribes an audio file after stripping silence and non-speech with voice activity detection, then "
        "compressing to Opus. Useful for recordings with long pauses. Set raw=true for a verbatim transcript, "
        "otherwise the transcript is lightly edited."
    ),
)
async def transcribe_audio_vad(
    raw: bool = Field(False, description="Return a verbatim transcript instead of the lightly edited one."),
    file_content: Optional[str] = FILE_CONTENT,
    file_url: Optional[str] = FILE_URL,
    ssh_host: Optional[str] = SSH_HOST,
    ssh_path: Optional[str] = SSH_PATH,
    ssh_user: Optional[str] = SSH_USER,
    ssh_port: Optional[int] = SSH_PORT,
    file_name: Optional[str] = FILE_NAME,
    output_dir: Optional[str] = OUTPUT_DIR,
    ctx: Context = None,
) -> ToolResult:
    return await _run_tool(
        ToolName.VAD, ctx,
        file_content=file_content, file_url=file_url,
        ssh_host=ssh_host, ssh_path=ssh_path, ssh_user=ssh_user, ssh_port=ssh_port,
        file_name=file_name, output_dir=output_dir,
        raw=raw,
    )
