#!/usr/bin/env python3
"""mdchat - LLM collaboration for Markdown files, from the terminal.

This module provides the main entry point for the mdchat command-line tool. It
parses arguments, configures logging, resolves settings and dispatches to the
requested command. Generated content is always framed in marker blocks:

    <!-- AI:summary -->
    ...
    <!-- /AI -->

Usage:
    mdchat [OPTIONS] COMMAND [ARGS]

Example:
    mdchat summarize "docs/**/*.md" --combine -o notes.md
    mdchat edit README.md --action shorten --section Install --replace
"""

import sys
import asyncio
import logging

from .args import parse_mdchat_arguments
from .config import ConfigStore, resolve_settings
from .completion import new_completion_handler
from .configure import run_config_command
from .core import MdChatEngine, list_sections
from .logger import get_logfile_path, setup_logging

logger = logging.getLogger(__name__)


async def pipeline(args) -> int:
    """Run one mdchat command and return its exit code."""
    store = ConfigStore()

    # Commands that never call a model
    if args.command == "config":
        return await run_config_command(store, args.action, args.key, args.value)
    if args.command == "sections":
        list_sections(args.file)
        return 0

    settings = resolve_settings(
        store.load(),
        overrides={
            "provider": args.provider,
            "model": args.model,
            "api_key": args.api_key,
            "base_url": args.base_url,
        },
    )
    logger.info(f"Using {settings.provider} ({settings.resolved_model})")
    engine = MdChatEngine(new_completion_handler(settings), settings=settings)

    try:
        if args.command == "ask":
            await engine.ask(args.question, output=args.output, stream=not args.no_stream)
        elif args.command == "summarize":
            await engine.summarize(args.input, output=args.output, combine=args.combine)
        elif args.command == "edit":
            await engine.edit(
                args.file,
                action=args.action,
                section=args.section,
                instructions=args.instructions,
                replace=args.replace,
                output=args.output,
            )
        elif args.command == "insert":
            await engine.insert(args.file, preview=args.preview, output=args.output)
    finally:
        await engine.close()

    return 0


def main(argv=None) -> int:
    """Parse arguments, run the command and map failures to exit codes."""
    args = parse_mdchat_arguments(argv)
    setup_logging(verbose=not args.quiet, log_file=args.log_file)
    if args.log_file:
        logger.info(f"Writing logs to {get_logfile_path()}")

    try:
        return asyncio.run(pipeline(args))
    except FileNotFoundError as e:
        logger.error(f"File not found: {e.filename or e}")
    except IsADirectoryError as e:
        logger.error(f"Cannot {args.command} a directory: {e.filename or e}")
    except PermissionError as e:
        logger.error(f"Permission denied: {e.filename or e}")
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 130
    except Exception as e:  # pylint: disable=broad-except
        logger.error(f"Error: {e}")
    return 1


def run_mdchat():
    """Command-line entry point to run the mdchat script."""
    sys.exit(main())


if __name__ == "__main__":
    run_mdchat()
