"""Instructions sent to Gemini alongside the audio, selected per tool."""

_RESPONSE_FORMAT = """## Response Format

You MUST respond with valid JSON matching this exact structure:

{{
  "title": "{title_hint}",
  "description": "A two-sentence summary of the note's content.",
  "transcript": "{transcript_hint}",
  "timestamp": "ISO 8601 timestamp (will be filled by system)",
  "timestamp_readable": "Human-readable timestamp (will be filled by system)"{extra_fields}
}}

Return ONLY the JSON object, no additional text or markdown code blocks."""


def _response_format(title_hint: str, transcript_hint: str, extra_fields: str = "") -> str:
    return _RESPONSE_FORMAT.format(
        title_hint=title_hint,
        transcript_hint=transcript_hint,
        extra_fields=extra_fields,
    )


TRANSCRIPTION_PROMPT = """The audio binary provided contains a voice note dictated by the user. Your task is to return a lightly edited transcript of this content.

## Editing Scope

Apply the following edits:

- **Omit filler words** such as "um," "uh," "like," etc.
- **Honor inline corrections**: If the user verbally corrects themselves, apply the correction. For example, if the user says "and tomorrow I need to buy kiwis, wait, I meant bananas," return "tomorrow I need to buy bananas." Treat verbal corrections as editing instructions.
- **Add punctuation** to ensure logical sentence structure.
- **Add paragraph breaks** where appropriate to improve readability.
- **Generate subheadings** where logical to divide the text into sections. Return the transcript in Markdown format.

## Out of Scope

Do **not** make the following types of edits:

- General stylistic improvements or rewording for "better" prose
- Adding information not present in the original audio
- Changing the user's intended meaning

## Core Principles

The fundamental objective is to return an accurate transcript that is lightly edited for intelligibility when read as text.

**Preserve the source material in its entirety.** If the input is exceptionally long, use a chunking approach with logical breakpoints. However, in most cases, the full transcript should fit within the context window.

""" + _response_format(
    "A short, descriptive title summarizing the note (e.g., 'Ideas for a Tech Blog')",
    "The edited transcript in Markdown format with paragraphs and subheadings.",
)


RAW_TRANSCRIPTION_PROMPT = """The audio binary provided contains a voice note dictated by the user. Your task is to return a verbatim transcript of this content.

## Instructions

- Transcribe exactly what is spoken, including filler words ("um," "uh," "like," etc.)
- Include false starts, corrections, and repetitions as spoken
- Add basic punctuation only where clearly indicated by pauses
- Do not edit, clean up, or restructure the content

""" + _response_format(
    "A short, descriptive title summarizing the note",
    "The verbatim transcript.",
)


DEVSPEC_PROMPT = """The audio binary provided contains a voice note in which the user describes software they want built or changed. Your task is to turn it into a development specification that an engineer or a coding agent can work from.

## Instructions

- Capture every requirement, constraint and preference the user states; do not invent new ones
- Resolve verbal self-corrections in favour of the user's final intent
- Organise the transcript in Markdown with these sections, omitting any the user said nothing about:
  - **Overview**: what is being built and why
  - **Requirements**: functional requirements as a bulleted list
  - **Technical Constraints**: languages, frameworks, platforms, integrations
  - **User Experience**: interface and workflow expectations
  - **Open Questions**: anything ambiguous or left undecided
- Keep the user's own terminology for components and features

""" + _response_format(
    "A short title naming the project or feature",
    "The development specification in Markdown format.",
)


def generate_format_prompt(format_label: str) -> str:
    """Instruction that transcribes the note and rewrites it as ``format_label``."""
    label = format_label.strip()
    return f"""The audio binary provided contains a voice note dictated by the user. Your task is to transcribe it and return the content formatted as: {label}.

## Instructions

- First understand the full content of the note, omitting filler words and applying any verbal self-corrections
- Restructure the content so it reads as a well-formed {label}, following the conventions that format normally has (greeting and sign-off for an email, checkboxes for a to-do list, headings for a document, and so on)
- Keep all substantive information from the note; do not add facts that were not spoken
- Use Markdown for structure where the format benefits from it

""" + _response_format(
        "A short, descriptive title for the formatted content",
        f"The content formatted as {label}.",
        f',\n  "format_applied": "{label}"',
    )
