import re
from pathlib import Path
from typing import Optional

import aiofiles

from models import TranscriptionResult

MAX_SLUG_LENGTH = 80


def slugify(text: str) -> str:
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")[:MAX_SLUG_LENGTH].strip("-")
    return slug or "transcript"


def render_markdown(result: TranscriptionResult) -> str:
    lines = [
        f"# {result.title}",
        "",
        f"> {result.description}",
        "",
        f"*Transcribed: {result.timestamp_readable}*",
    ]
    if result.format_applied:
        lines += ["", f"*Format: {result.format_applied}*"]
    lines += ["", "---", "", result.transcript, ""]
    return "\n".join(lines)


def _available_path(directory: Path, slug: str) -> Path:
    candidate = directory / f"{slug}.md"
    counter = 2
    while candidate.exists():
        candidate = directory / f"{slug}-{counter}.md"
        counter += 1
    return candidate


async def save_transcript(result: TranscriptionResult, output_dir: str) -> str:
    """Writes the transcript as Markdown named after its title; returns the written path."""
    directory = Path(output_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = _available_path(directory, slugify(result.title))
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(render_markdown(result))
    return str(path)


def resolve_output_dir(requested: Optional[str], default: Optional[str]) -> Optional[str]:
    if requested and requested.strip():
        return requested.strip()
    if default and default.strip():
        return default.strip()
    return None
