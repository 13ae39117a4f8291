"""
File system operations for mdchat.

Resolves command-line inputs into direct text or a list of readable files,
reads file contents (plain text, HTML, PDF and DOCX), and writes results back
to disk: appending marker blocks to output files and creating backups before
a file is replaced.
"""

import os
import glob
import time
import shutil
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

import yaml
from bs4 import BeautifulSoup
from docx import Document as DocxDocument
from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)

# Plain text formats read as UTF-8
TEXT_EXTENSIONS = {
    ".md",
    ".markdown",
    ".mdx",
    ".txt",
    ".text",
    ".rst",
    ".adoc",
    ".org",
    ".csv",
    ".json",
    ".yaml",
    ".yml",
    ".toml",
    ".xml",
}
# Formats that need extraction before summarizing
DOCUMENT_EXTENSIONS = {".html", ".htm", ".pdf", ".docx"}
READABLE_EXTENSIONS = TEXT_EXTENSIONS | DOCUMENT_EXTENSIONS

# Directories never descended into during a scan
SKIP_DIRS = {
    "__pycache__",
    "node_modules",
    "venv",
    "env",
    "dist",
    "build",
}


@lru_cache(maxsize=None)
def read_prompts(file_path: str = "prompts.yaml") -> dict:
    """
    Reads the packaged prompt file and returns its content as a dictionary.
    """
    base_dir = os.path.dirname(os.path.abspath(__file__))
    prompts_path = os.path.join(base_dir, file_path)
    with open(prompts_path, "r", encoding="utf-8") as f:
        prompts = yaml.safe_load(f)
    if not isinstance(prompts, dict):
        raise ValueError(f"Prompt file '{prompts_path}' must contain a mapping.")
    return prompts


@dataclass
class ResolvedInput:
    """
    A command-line input resolved to text or files.

    Attributes:
        argument (str): The raw argument as given by the user.
        text (str, optional): Direct text when the argument is not a path.
        files (list[str]): Files to process, in a stable order.
        is_pattern (bool): True when files came from a directory scan or glob.
    """

    argument: str
    text: Optional[str] = None
    files: List[str] = field(default_factory=list)
    is_pattern: bool = False

    @property
    def is_text(self) -> bool:
        return self.text is not None


class FileHandler:
    """
    Handles all file system operations for the application.

    Finds and reads input files, writes output blocks, and creates backups
    of files that are about to be overwritten.
    """

    def resolve_input(self, argument: str) -> ResolvedInput:
        """
        Decide whether an argument names a file, a directory, a glob pattern
        or is text to be used directly.

        Args:
            argument: A path, directory, glob pattern, or literal text.

        Returns:
            ResolvedInput with either ``text`` or ``files`` populated. A
            directory, or a pattern with a path separator, that matches
            nothing yields an empty file list.
        """
        if os.path.isfile(argument):
            return ResolvedInput(argument=argument, files=[argument])

        if os.path.isdir(argument):
            files = self.find_readable_files(argument)
            logger.info(f"Found {len(files)} readable file(s) in '{argument}'.")
            return ResolvedInput(argument=argument, files=files, is_pattern=True)

        if self.looks_like_pattern(argument):
            files = self.expand_glob(argument)
            logger.info(f"Pattern '{argument}' matched {len(files)} readable file(s).")
            # A bare word such as "Why?" that matches nothing is text
            if files or os.sep in argument or "/" in argument:
                return ResolvedInput(argument=argument, files=files, is_pattern=True)

        return ResolvedInput(argument=argument, text=argument)

    @staticmethod
    def looks_like_pattern(argument: str) -> bool:
        """A glob pattern has wildcard characters and no whitespace."""
        return glob.has_magic(argument) and not any(c.isspace() for c in argument)

    @staticmethod
    def is_readable(path: str) -> bool:
        return os.path.splitext(path)[1].lower() in READABLE_EXTENSIONS

    def find_readable_files(self, directory: str) -> List[str]:
        """
        Recursively scan a directory for readable text files.

        Hidden files and folders and common build/dependency folders are
        skipped. Returns paths sorted for a deterministic processing order.
        """
        found = []
        for root, dirs, files in os.walk(directory):
            # Prune in place so os.walk does not descend
            dirs[:] = [d for d in dirs if not d.startswith(".") and d not in SKIP_DIRS]
            for filename in files:
                if filename.startswith("."):
                    continue
                filepath = os.path.join(root, filename)
                if self.is_readable(filepath):
                    found.append(filepath)
                else:
                    logger.debug(f"Skipping unsupported file '{filepath}'.")
        return sorted(found)

    def expand_glob(self, pattern: str) -> List[str]:
        """Expand a glob pattern to readable files, sorted."""
        matches = glob.glob(pattern, recursive=True)
        return sorted(
            {path for path in matches if os.path.isfile(path) and self.is_readable(path)}
        )

    @staticmethod
    def file_size_mb(path: str) -> float:
        return os.path.getsize(path) / (1024 * 1024)

    def read_file_content(self, filepath: str) -> str:
        """
        Reads the main body text from a file path and returns it as a string.

        Raises:
            FileNotFoundError, IsADirectoryError, PermissionError: unchanged
                from the underlying open() so callers can report them.
        """
        ext = os.path.splitext(filepath)[1].lower()

        if ext == ".pdf":
            reader = PdfReader(filepath)
            text = ""
            for page in reader.pages:
                page_text = page.extract_text()
                if page_text:
                    text += page_text + "\n"
            return text
        elif ext == ".docx":
            doc = DocxDocument(filepath)
            return "\n".join([para.text for para in doc.paragraphs])
        elif ext in [".htm", ".html"]:
            with open(filepath, "r", encoding="utf-8") as f:
                html_content = f.read()
            soup = BeautifulSoup(html_content, "html.parser")
            return soup.get_text(separator="\n")

        with open(filepath, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def read_text(filepath: str) -> str:
        """Read a file verbatim, for files that will be edited in place."""
        with open(filepath, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def write_text(filepath: str, content: str) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)

    @staticmethod
    def append_text(filepath: str, content: str) -> None:
        """Append content to a file, creating it if needed."""
        with open(filepath, "a", encoding="utf-8") as f:
            f.write(content)

    @staticmethod
    def create_backup(filepath: str, timestamped: bool = True) -> str:
        """
        Copy a file next to itself before it is overwritten.

        Args:
            filepath: File to back up
            timestamped: Append the current epoch milliseconds to the name

        Returns:
            Path of the backup file
        """
        if timestamped:
            backup_path = f"{filepath}.backup.{int(time.time() * 1000)}"
        else:
            backup_path = f"{filepath}.backup"
        shutil.copyfile(filepath, backup_path)
        logger.info(f"Backup created: {backup_path}")
        return backup_path
