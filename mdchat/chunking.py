"""Boundary-respecting text splitting for long-document summarization.

Text is first cut into sentences, which are greedily packed into chunks that
stay within a character budget. A sentence that is too long on its own is
split along paragraph breaks and then along whitespace, so oversized output
only ever happens for a single word longer than the budget.
"""

import re
from typing import List, Protocol, runtime_checkable

# A sentence ends at ., ! or ? followed by whitespace
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_WORD_SPLIT = re.compile(r"\s+")


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text splitting strategies.

    Lets the sentence heuristic be swapped for a proper segmenter without
    touching the summarization logic.
    """

    def split(self, text: str, max_chunk_chars: int) -> List[str]:
        """Split text into ordered, non-empty chunks."""
        ...


class SentenceChunker:
    """Default chunking: pack sentences, fall back to paragraphs, then words."""

    def split(self, text: str, max_chunk_chars: int) -> List[str]:
        """Split text into chunks of at most max_chunk_chars characters.

        Args:
            text: The text content to split
            max_chunk_chars: Character budget for each chunk

        Returns:
            Ordered list of non-empty chunks. A chunk only exceeds the budget
            when it is a single word that is longer than the budget.
        """
        if max_chunk_chars <= 0:
            raise ValueError("max_chunk_chars must be positive")

        chunks = []
        current = ""

        for sentence in self._split_sentences(text):
            # Sentence too long on its own: flush and break it down further
            if len(sentence) > max_chunk_chars:
                if current:
                    chunks.append(current.strip())
                    current = ""
                chunks.extend(self._split_long_sentence(sentence, max_chunk_chars))
                continue

            if not current:
                current = sentence
            elif len(current) + 1 + len(sentence) <= max_chunk_chars:
                current += " " + sentence
            else:
                chunks.append(current.strip())
                current = sentence

        if current:
            chunks.append(current.strip())

        return [chunk for chunk in chunks if chunk]

    def _split_long_sentence(self, sentence: str, max_chunk_chars: int) -> List[str]:
        """Split an oversized sentence by paragraphs, then by words."""
        if len(sentence) <= max_chunk_chars:
            return [sentence.strip()]

        # Try splitting by paragraphs first
        paragraphs = _PARAGRAPH_SPLIT.split(sentence)
        if len(paragraphs) > 1:
            chunks = []
            for paragraph in paragraphs:
                chunks.extend(self._split_long_sentence(paragraph, max_chunk_chars))
            return chunks

        return self._pack_words(sentence, max_chunk_chars)

    @staticmethod
    def _pack_words(text: str, max_chunk_chars: int) -> List[str]:
        """Greedily pack whitespace-delimited words into chunks."""
        chunks = []
        current = ""

        for word in _WORD_SPLIT.split(text):
            if not word:
                continue
            if not current:
                current = word
            elif len(current) + 1 + len(word) <= max_chunk_chars:
                current += " " + word
            else:
                chunks.append(current)
                current = word

            # A single word longer than the budget is emitted whole
            if len(current) > max_chunk_chars:
                chunks.append(current)
                current = ""

        if current:
            chunks.append(current)

        return chunks

    @staticmethod
    def _split_sentences(text: str) -> List[str]:
        return [part for part in _SENTENCE_SPLIT.split(text) if part.strip()]
