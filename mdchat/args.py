"""Command-line argument parsing for mdchat.

One parser with a subcommand per operation:

- ask: question in, answer block out (streamed by default).
- summarize: text, file, directory or glob in, summary block(s) out.
- edit: rewrite a file or one of its sections with a named action.
- insert: fill ``<!-- AI insert here -->`` placeholders in a file.
- sections: list the headers of a Markdown file.
- config: manage the persisted key/value configuration.

Provider options (--provider, --model, --api_key, --base_url) are global and
override the stored configuration for one invocation.
"""

import argparse

from . import __version__
from .config import PROVIDERS
from .io import read_prompts


def build_parser():
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="mdchat",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        description="Markdown Chat: LLM collaboration in your terminal",
    )
    parser.add_argument("--version", action="version", version=__version__)

    # Provider overrides
    parser.add_argument(
        "-p",
        "--provider",
        choices=PROVIDERS,
        default=None,
        help="LLM provider (overrides config)",
    )
    parser.add_argument("-m", "--model", default=None, help="Model name (overrides config)")
    parser.add_argument("--api_key", default=None, help="API key (overrides config)")
    parser.add_argument(
        "--base_url", default=None, help="Provider base URL (overrides config)"
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors",
    )
    parser.add_argument("--log_file", default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # ask command
    ask_parser = subparsers.add_parser(
        "ask", help="Ask a question and insert AI output into Markdown"
    )
    ask_parser.add_argument("question", help="Question to ask")
    ask_parser.add_argument("-o", "--output", default=None, help="Markdown file to append the answer to")
    ask_parser.add_argument(
        "--no_stream",
        action="store_true",
        help="Wait for the full answer instead of streaming it",
    )

    # summarize command
    summarize_parser = subparsers.add_parser(
        "summarize", help="Summarize text, a file, a directory or a glob pattern"
    )
    summarize_parser.add_argument("input", help="Text, file path, directory or glob pattern")
    summarize_parser.add_argument(
        "-o", "--output", default=None, help="Markdown file to append the summary to"
    )
    summarize_parser.add_argument(
        "-c",
        "--combine",
        action="store_true",
        help="Combine summaries of multiple files into one overview",
    )

    # edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a Markdown file or section with AI")
    edit_parser.add_argument("file", help="Markdown file to edit")
    edit_parser.add_argument(
        "-a",
        "--action",
        choices=list(read_prompts()["edit"]["actions"]),
        default="improve",
        help="Kind of edit to apply",
    )
    edit_parser.add_argument("-s", "--section", default=None, help="Header of the section to edit")
    edit_parser.add_argument(
        "-i", "--instructions", default=None, help="Additional instructions for the edit"
    )
    edit_parser.add_argument(
        "-r",
        "--replace",
        action="store_true",
        help="Replace the file or section in place (a backup is created)",
    )
    edit_parser.add_argument(
        "-o", "--output", default=None, help="Markdown file to append the edit to"
    )

    # insert command
    insert_parser = subparsers.add_parser(
        "insert", help="Fill AI insert blocks in a Markdown file"
    )
    insert_parser.add_argument("file", help="Markdown file containing insert blocks")
    insert_parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the blocks that would be filled without calling the model",
    )
    insert_parser.add_argument(
        "-o", "--output", default=None, help="Write the result here instead of updating the file"
    )

    # sections command
    sections_parser = subparsers.add_parser("sections", help="List the sections of a Markdown file")
    sections_parser.add_argument("file", help="Markdown file")

    # config command
    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("action", choices=["setup", "set", "get", "list"])
    config_parser.add_argument("key", nargs="?", default=None, help="Config key")
    config_parser.add_argument("value", nargs="?", default=None, help="Config value")

    return parser


def parse_mdchat_arguments(argv=None):
    """Parse command-line arguments for mdchat.

    Returns:
        argparse.Namespace: Parsed arguments as attributes.
    """
    return build_parser().parse_args(argv)
