"""
Command Parser for incoming WhatsApp messages.

WhatsApp keyword commands have no prefix: the first word of the message
is the keyword and the remaining words are its arguments.

- "ping" -> CommandResult(keyword="ping", args=[])
- "Weather  Lyon" -> CommandResult(keyword="weather", args=["lyon"])
- "" or whitespace -> CommandResult(keyword="", args=[])
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class CommandResult:
    """Result of parsing a message body."""

    keyword: str
    args: List[str] = field(default_factory=list)
    raw_text: str = ""

    @property
    def is_empty(self) -> bool:
        """True when the message carried no text at all."""
        return not self.keyword

    @property
    def argument_text(self) -> str:
        """Arguments joined back with single spaces."""
        return " ".join(self.args)


def normalize_text(text: Optional[str]) -> str:
    """Trim and lower-case a message body; None becomes ''."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    return text.strip().lower()


def parse_command(text: Optional[str]) -> CommandResult:
    """
    Split a message body into keyword and argument tokens.

    Matching is case-insensitive, so the whole body is lower-cased
    before splitting. Runs of whitespace separate tokens.

    Args:
        text: The message text to parse

    Returns:
        CommandResult with the keyword and argument tokens
    """
    raw_text = "" if text is None else str(text)
    normalized = normalize_text(text)

    if not normalized:
        return CommandResult(keyword="", args=[], raw_text=raw_text)

    parts = normalized.split()
    return CommandResult(keyword=parts[0], args=parts[1:], raw_text=raw_text)
