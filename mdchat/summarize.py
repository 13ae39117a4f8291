"""
Summarization of documents of any size.

Short text is summarized with a single call. Text over the token budget is
split into chunks, each chunk is summarized on its own, and a final call
combines the ordered partial summaries into one overview. Several files are
summarized one at a time and can optionally be combined into a cross-file
overview.

Failure handling differs by level: a failed call inside one document's
chunked run aborts that document, while a failed file in a multi-file run is
logged and the remaining files are still processed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .chunking import ChunkingStrategy, SentenceChunker
from .completion import CompletionHandler
from .io import FileHandler, read_prompts
from .models import (
    CHARS_PER_TOKEN,
    FileSummary,
    MultiFileResult,
    PartialSummary,
    estimate_tokens,
)

logger = logging.getLogger(__name__)

# Maximum tokens sent in one request, leaving room for the response
MAX_INPUT_TOKENS = 15000

Sleep = Callable[[float], Awaitable[None]]


class HierarchicalSummarizer:
    """
    Summarizes a single text, chunking it when it is too large.

    Attributes:
        completion (CompletionHandler): Text generation backend.
        chunker (ChunkingStrategy): Splits oversized text into chunks.
        token_budget (int): Largest estimated size summarized in one call.
        delay_seconds (float): Pause between successive chunk calls.
        sleep (Callable): Awaitable used for the pause; swap for a no-op in tests.
    """

    def __init__(
        self,
        completion: CompletionHandler,
        chunker: Optional[ChunkingStrategy] = None,
        token_budget: int = MAX_INPUT_TOKENS,
        delay_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
        prompts: Optional[dict] = None,
    ):
        self.completion = completion
        self.chunker = chunker or SentenceChunker()
        self.token_budget = token_budget
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.prompts = (prompts or read_prompts())["summarize"]

    async def summarize(
        self,
        text: str,
        label: str = "text",
        token_budget: Optional[int] = None,
        chunk_char_budget: Optional[int] = None,
    ) -> str:
        """
        Summarize text, directly or through chunked summaries.

        Args:
            text: Content to summarize
            label: Source name used in chunk prompts (file name or "text")
            token_budget: Override for the instance token budget
            chunk_char_budget: Characters per chunk; defaults to token_budget * 4

        Returns:
            The final summary text
        """
        token_budget = token_budget or self.token_budget
        tokens = estimate_tokens(text)
        logger.info(f"Estimated tokens: {tokens:,}")

        if tokens <= token_budget:
            prompt = self.prompts["single"].format(content=text)
            return await self.completion.generate(prompt)

        logger.info("Content exceeds token limit. Using chunked summarization...")
        chunk_char_budget = chunk_char_budget or token_budget * CHARS_PER_TOKEN
        chunks = self.chunker.split(text, chunk_char_budget)
        return await self.summarize_chunks(chunks, label)

    async def summarize_chunks(self, chunks: List[str], label: str) -> str:
        """Summarize each chunk in order, then combine the partial summaries."""
        total = len(chunks)
        logger.info(f"Processing {total} chunks...")

        partials = []
        for i, chunk in enumerate(chunks, start=1):
            logger.info(f"Processing chunk {i}/{total}...")
            prompt = self.prompts["chunk"].format(
                index=i, total=total, label=label, content=chunk
            )
            summary = await self.completion.generate(prompt)
            partials.append(PartialSummary(index=i, total=total, text=summary))

            # Fixed pause between chunk calls
            if i < total:
                await self.sleep(self.delay_seconds)

        logger.info("Creating final comprehensive summary...")
        combined = "\n\n".join(partial.render() for partial in partials)
        prompt = self.prompts["combine_chunks"].format(label=label, content=combined)
        return await self.completion.generate(prompt)


class MultiFileSummarizer:
    """
    Summarizes a list of files one after another.

    Attributes:
        summarizer (HierarchicalSummarizer): Per-file summarizer.
        file_handler (FileHandler): Reads file contents and sizes.
        max_file_size_mb (float): Files above this size are skipped.
        combine_threshold (int): More successful files than this triggers a
            cross-file overview even when not requested.
        delay_seconds (float): Pause between files.
    """

    def __init__(
        self,
        summarizer: HierarchicalSummarizer,
        file_handler: Optional[FileHandler] = None,
        max_file_size_mb: float = 10.0,
        combine_threshold: int = 5,
        delay_seconds: float = 1.0,
        sleep: Optional[Sleep] = None,
    ):
        self.summarizer = summarizer
        self.file_handler = file_handler or FileHandler()
        self.max_file_size_mb = max_file_size_mb
        self.combine_threshold = combine_threshold
        self.delay_seconds = delay_seconds
        self.sleep = sleep or summarizer.sleep

    async def summarize_files(self, paths: List[str], combine: bool = False) -> MultiFileResult:
        """
        Summarize every file, isolating failures to the file that caused them.

        Args:
            paths: Files to summarize, in processing order
            combine: Always produce a cross-file overview

        Returns:
            MultiFileResult with per-file summaries, the optional combined
            overview, and the files that failed or were skipped
        """
        result = MultiFileResult()
        total = len(paths)

        for i, path in enumerate(paths, start=1):
            logger.info(f"Summarizing file {i}/{total}: {path}")
            try:
                summary = await self._summarize_file(path)
            except Exception as e:  # pylint: disable=broad-except
                logger.error(f"Failed to summarize '{path}': {e}")
                result.failures.append(path)
            else:
                if summary is None:
                    result.skipped.append(path)
                else:
                    result.summaries.append(FileSummary(path=path, summary=summary))

            if i < total:
                await self.sleep(self.delay_seconds)

        if result.summaries and (combine or len(result.summaries) > self.combine_threshold):
            result.combined = await self.combine(result.summaries)

        logger.info(
            f"Summarized {len(result.summaries)} of {total} files "
            f"({len(result.failures)} failed, {len(result.skipped)} skipped)."
        )
        return result

    async def _summarize_file(self, path: str) -> Optional[str]:
        """Summarize one file, or return None when it should be skipped."""
        size_mb = self.file_handler.file_size_mb(path)
        if size_mb > self.max_file_size_mb:
            logger.warning(
                f"Skipping '{path}': {size_mb:.2f} MB exceeds the {self.max_file_size_mb} MB limit."
            )
            return None

        content = self.file_handler.read_file_content(path)
        if not content.strip():
            logger.warning(f"Skipping '{path}': file is empty.")
            return None

        return await self.summarizer.summarize(content, label=path)

    async def combine(self, summaries: List[FileSummary]) -> str:
        """Synthesize one overview from per-file summaries."""
        logger.info(f"Combining summaries of {len(summaries)} files...")
        content = "\n\n".join(f"### {item.path}\n{item.summary}" for item in summaries)
        prompt = self.summarizer.prompts["combine_files"].format(
            count=len(summaries), content=content
        )
        return await self.summarizer.completion.generate(prompt)
