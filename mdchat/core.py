"""
This module contains the command logic of mdchat.

It provides MdChatEngine, which answers questions, summarizes text and files,
edits Markdown files or sections, and fills insert placeholders. Every result
is framed in an AI marker block and either printed or written back to a
Markdown file.
"""

import os
import asyncio
import logging
from typing import List, Optional

from .config import Settings
from .completion import CompletionHandler
from .io import FileHandler, read_prompts
from .markdown import (
    Header,
    extract_section,
    find_insert_blocks,
    list_headers,
    replace_lines,
    wrap_block,
)
from .models import Document
from .summarize import HierarchicalSummarizer, MultiFileSummarizer

logger = logging.getLogger(__name__)


class MdChatEngine:
    """
    Runs mdchat commands against a completion handler.

    Attributes:
        completion (CompletionHandler): Text generation backend.
        settings (Settings): Resolved settings for this invocation.
        file_handler (FileHandler): File system access.
        summarizer (HierarchicalSummarizer): Single-document summarizer.
        multi_summarizer (MultiFileSummarizer): Multi-file summarizer.
    """

    def __init__(
        self,
        completion: CompletionHandler,
        settings: Optional[Settings] = None,
        file_handler: Optional[FileHandler] = None,
        sleep=asyncio.sleep,
    ):
        self.completion = completion
        self.settings = settings or Settings()
        self.file_handler = file_handler or FileHandler()
        self.prompts = read_prompts()

        self.summarizer = HierarchicalSummarizer(
            completion,
            token_budget=self.settings.max_input_tokens,
            delay_seconds=self.settings.chunk_delay_seconds,
            sleep=sleep,
            prompts=self.prompts,
        )
        self.multi_summarizer = MultiFileSummarizer(
            self.summarizer,
            file_handler=self.file_handler,
            max_file_size_mb=self.settings.max_file_size_mb,
            combine_threshold=self.settings.combine_threshold,
            delay_seconds=self.settings.file_delay_seconds,
            sleep=sleep,
        )

    async def ask(self, question: str, output: Optional[str] = None, stream: bool = True) -> str:
        """Answer a question, streaming to stdout unless disabled."""
        if stream:
            print(f"Question: {question}\n")
            fragments = []
            async for fragment in self.completion.stream(question):
                fragments.append(fragment)
                print(fragment, end="", flush=True)
            # Finish the streamed line
            print("")
            answer = "".join(fragments)
            block = wrap_block(answer, "answer")
        else:
            answer = await self.completion.generate(question)
            block = wrap_block(answer, "answer")
            print(block)

        if output:
            self.file_handler.append_text(output, f"\n\n## Question\n{question}\n\n{block}")
            logger.info(f"Answer appended to {output}")

        return answer

    async def summarize(
        self, argument: str, output: Optional[str] = None, combine: bool = False
    ) -> Optional[str]:
        """
        Summarize direct text, a file, a directory or a glob pattern.

        Returns:
            The text written out (all blocks), or None when nothing matched.
        """
        resolved = self.file_handler.resolve_input(argument)

        if resolved.is_text:
            document = Document(content=resolved.text)
            return await self._summarize_document(document, output)

        if not resolved.files:
            logger.info(f"No readable files found for '{argument}'. Nothing to summarize.")
            return None

        if not resolved.is_pattern:
            path = resolved.files[0]
            size_mb = self.file_handler.file_size_mb(path)
            logger.info(f"Reading content from: {path} ({size_mb:.2f} MB)")
            if size_mb > self.settings.max_file_size_mb:
                logger.warning("Large file detected. This may take some time to process...")
            content = self.file_handler.read_file_content(path)
            if not content.strip():
                raise ValueError(f"Nothing to summarize in {path}")
            return await self._summarize_document(Document(content=content, origin=path), output)

        return await self._summarize_many(resolved.files, output, combine)

    async def _summarize_document(self, document: Document, output: Optional[str]) -> str:
        summary = await self.summarizer.summarize(document.content, label=document.label)
        block = wrap_block(summary, "summary")

        if output:
            if document.origin is not None:
                heading = f"Summary of {document.origin}"
            else:
                heading = "Summary"
            self.file_handler.append_text(output, f"\n\n## {heading}\n\n{block}")
            logger.info(f"Summary appended to {output}")
        else:
            print(block)

        return block

    async def _summarize_many(self, files: List[str], output: Optional[str], combine: bool) -> str:
        result = await self.multi_summarizer.summarize_files(files, combine=combine)

        if not result.summaries:
            if result.failures:
                raise RuntimeError(f"Failed to summarize all {len(result.failures)} file(s).")
            logger.info("No files could be summarized.")
            return ""

        if result.combined is not None:
            sections = [(f"Summary of {len(result.summaries)} files", result.combined)]
        else:
            sections = [(f"Summary of {item.path}", item.summary) for item in result.summaries]

        rendered = []
        for heading, summary in sections:
            rendered.append(f"\n\n## {heading}\n\n{wrap_block(summary, 'summary')}")

        if output:
            self.file_handler.append_text(output, "".join(rendered))
            logger.info(f"{len(rendered)} summary block(s) appended to {output}")
        else:
            for text in rendered:
                print(text.lstrip("\n"))

        return "".join(rendered)

    def build_edit_prompt(self, content: str, action: str, instructions: Optional[str] = None) -> str:
        """Render the prompt for an edit action."""
        actions = self.prompts["edit"]["actions"]
        if action not in actions:
            raise ValueError(
                f'Unknown action "{action}". Available actions: {", ".join(actions)}'
            )

        if instructions:
            return self.prompts["edit"]["template_with_instructions"].format(
                action=actions[action], instructions=instructions, content=content
            )
        return self.prompts["edit"]["template"].format(action=actions[action], content=content)

    async def edit(
        self,
        filepath: str,
        action: str = "improve",
        section: Optional[str] = None,
        instructions: Optional[str] = None,
        replace: bool = False,
        output: Optional[str] = None,
    ) -> str:
        """
        Edit a whole file or one of its sections.

        With ``replace`` the file is backed up and updated in place; with
        ``output`` the edit is appended there as a marker block; otherwise the
        result is printed.

        Returns:
            The edited text returned by the model.
        """
        original = self.file_handler.read_text(filepath)
        logger.info(f"Reading file: {filepath}")

        # Determine what to edit
        target = None
        content_to_edit = original
        edit_context = "entire file"
        if section:
            target = extract_section(original, section)
            if target is not None:
                content_to_edit = target.content
                edit_context = f'section "{section}"'
                logger.info(f"Targeting {edit_context}")
            else:
                logger.warning(f'Section "{section}" not found, editing entire file')

        prompt = self.build_edit_prompt(content_to_edit, action, instructions)
        logger.info(f"Action: {action} ({edit_context})")
        edited = await self.completion.generate(prompt)

        if target is not None:
            if replace:
                self.file_handler.create_backup(filepath)
                updated = replace_lines(original, target.start, target.end, edited)
                self.file_handler.write_text(filepath, updated)
                logger.info(f'Section "{section}" replaced in {filepath}')
            elif output:
                block = wrap_block(f"## Edited Section: {section}\n\n{edited}", "edit")
                self.file_handler.append_text(output, f"\n\n{block}")
                logger.info(f"Edited section appended to {output}")
            else:
                print("\nOriginal section:")
                print(f"```markdown\n{target.content}\n```")
                print("\nEdited section:")
                print(f"```markdown\n{edited}\n```")
                print("\nTo replace the section, use: --replace")
                print("To save to file, use: -o filename.md")
        elif replace:
            self.file_handler.create_backup(filepath)
            self.file_handler.write_text(filepath, edited)
            logger.info(f"File replaced: {filepath}")
        elif output:
            heading = f"## Edited version of {os.path.basename(filepath)}"
            block = wrap_block(f"{heading}\n\n{edited}", "edit")
            self.file_handler.append_text(output, f"\n\n{block}")
            logger.info(f"Edited content appended to {output}")
        else:
            print(wrap_block(edited, "edit"))
            print("To replace the original file, use: --replace")
            print("To save to a new file, use: -o filename.md")

        return edited

    async def insert(self, filepath: str, preview: bool = False, output: Optional[str] = None) -> int:
        """
        Fill every AI insert block in a file.

        Returns:
            Number of insert blocks found.
        """
        content = self.file_handler.read_text(filepath)
        blocks = find_insert_blocks(content)

        if not blocks:
            logger.info("No AI insert blocks found in the file.")
            print("Add insert blocks like this:")
            print("   <!-- AI insert here -->")
            print("   <!-- AI insert end -->")
            return 0

        logger.info(f"Found {len(blocks)} insert block(s) to process...")

        if preview:
            for i, block in enumerate(blocks, start=1):
                print(f"\nInsert block {i}/{len(blocks)} (line {block.start_line + 1}):")
                print("Context before:")
                print(_preview(block.context_before))
                print("\nContext after:")
                print(_preview(block.context_after))
            print(f"\nPreview mode: found {len(blocks)} insert blocks that would be processed.")
            return len(blocks)

        # Process blocks in reverse order to keep line numbers valid
        updated = content
        for i in range(len(blocks) - 1, -1, -1):
            block = blocks[i]
            logger.info(f"Processing insert block {i + 1}/{len(blocks)}...")
            prompt = self.prompts["insert"]["template"].format(
                before=block.context_before, after=block.context_after
            )
            generated = await self.completion.generate(prompt)
            replacement = wrap_block(generated.strip(), "insert").rstrip("\n")
            updated = replace_lines(updated, block.start_line, block.end_line + 1, replacement)
            logger.info(f"Generated content for block {i + 1}")

        if output:
            self.file_handler.write_text(output, updated)
            logger.info(f"Updated content saved to: {output}")
        else:
            self.file_handler.create_backup(filepath, timestamped=False)
            self.file_handler.write_text(filepath, updated)
            logger.info(f"File updated: {filepath}")

        logger.info(f"Successfully processed {len(blocks)} insert block(s)!")
        return len(blocks)

    async def close(self):
        await self.completion.close()


def _preview(text: str, limit: int = 200) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def list_sections(filepath: str, file_handler: Optional[FileHandler] = None) -> List[Header]:
    """Print the headers of a Markdown file as an indented, numbered list."""
    file_handler = file_handler or FileHandler()
    headers = list_headers(file_handler.read_text(filepath))

    if not headers:
        print("No sections found in the file")
        return headers

    print(f"Sections in {os.path.basename(filepath)}:")
    for i, header in enumerate(headers, start=1):
        indent = "  " * (header.level - 1)
        print(f"{i}. {indent}{header.title} (line {header.line})")
    return headers
