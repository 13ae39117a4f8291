"""Data models shared by the summarization pipeline."""

import math
import os
from dataclasses import dataclass, field
from typing import List, Optional


# Rough heuristic: one token is about four characters
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count of a text as ceil(characters / 4)."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class Document:
    """Text to summarize along with where it came from."""

    content: str
    origin: Optional[str] = None  # None for direct text

    @property
    def label(self) -> str:
        """Human-readable source name used in prompts."""
        if self.origin is None:
            return "text"
        return os.path.basename(self.origin)

    @property
    def estimated_tokens(self) -> int:
        return estimate_tokens(self.content)


@dataclass
class PartialSummary:
    """Summary of a single chunk, tagged with its position."""

    index: int
    total: int
    text: str

    def render(self) -> str:
        return f"**Part {self.index}:**\n{self.text}"


@dataclass
class FileSummary:
    """Summary produced for one file of a multi-file run."""

    path: str
    summary: str


@dataclass
class MultiFileResult:
    """Outcome of summarizing several files."""

    summaries: List[FileSummary] = field(default_factory=list)
    combined: Optional[str] = None
    failures: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
