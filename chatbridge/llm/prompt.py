"""System prompt assembly."""

import logging
from datetime import UTC, datetime
from pathlib import Path

from chatbridge.config import settings

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"

DEFAULT_PERSONA = (
    "You are a friendly, knowledgeable assistant living in a group chat. "
    "Answer clearly and concisely. Several people may be talking to you in the "
    "same conversation, so address the latest message."
)


def _read_config(filename: str) -> str:
    """Read a config markdown file, returning empty string if missing."""
    path = CONFIG_DIR / filename
    if path.exists():
        return path.read_text(encoding="utf-8")
    return ""


def build_system_prompt(tool_names: list[str] | None = None) -> list[dict]:
    """Assemble the system prompt.

    The persona gets ``cache_control`` so it's cached across tool-calling
    rounds. The current time and tool hints follow as separate blocks.

    Args:
        tool_names: Names of the tools offered on this request.

    Returns:
        List of content blocks for the Claude ``system`` parameter.
    """
    persona = _read_config("PERSONA.md").strip() or DEFAULT_PERSONA
    formatting = (
        "Your replies are delivered as chat messages. Prefer short paragraphs "
        "and plain lists; long answers are split into several messages of at "
        f"most {settings.max_message_length} characters."
    )

    blocks: list[dict] = [
        {
            "type": "text",
            "text": f"{persona}\n\n{formatting}",
            "cache_control": {"type": "ephemeral"},
        },
        {
            "type": "text",
            "text": f"Current time: {datetime.now(UTC).strftime('%A, %B %d, %Y %H:%M')} UTC",
        },
    ]

    if tool_names:
        blocks.append({
            "type": "text",
            "text": (
                "# Tools\n\n"
                f"Available: {', '.join(tool_names)}. Use a tool only when it "
                "helps answer the question; you can call at most a few per reply."
            ),
        })

    return blocks
