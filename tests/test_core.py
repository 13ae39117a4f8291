import asyncio
from pathlib import Path

import pytest

from conftest import FakeCompletion, no_sleep
from mdchat.config import Settings
from mdchat.core import MdChatEngine, list_sections


def _engine(completion: FakeCompletion) -> MdChatEngine:
    return MdChatEngine(completion, settings=Settings(), sleep=no_sleep)


def test_summarize_direct_text_prints_block(capsys) -> None:
    completion = FakeCompletion(responses=["Summary text"])

    asyncio.run(_engine(completion).summarize("A" * 200))

    assert completion.calls == 1
    assert capsys.readouterr().out == "<!-- AI:summary -->\nSummary text\n<!-- /AI -->\n\n"


def test_summarize_file_appends_with_heading(tmp_path: Path) -> None:
    source = tmp_path / "notes.md"
    source.write_text("Some notes worth summarizing.", encoding="utf-8")
    output = tmp_path / "out.md"
    output.write_text("# Existing", encoding="utf-8")
    completion = FakeCompletion(responses=["Short"])

    asyncio.run(_engine(completion).summarize(str(source), output=str(output)))

    assert output.read_text(encoding="utf-8") == (
        f"# Existing\n\n## Summary of {source}\n\n<!-- AI:summary -->\nShort\n<!-- /AI -->\n"
    )


def test_summarize_empty_single_file_is_an_error(tmp_path: Path) -> None:
    source = tmp_path / "empty.md"
    source.write_text("", encoding="utf-8")

    with pytest.raises(ValueError, match="Nothing to summarize"):
        asyncio.run(_engine(FakeCompletion()).summarize(str(source)))


def test_summarize_directory_writes_one_block_per_file(tmp_path: Path) -> None:
    docs = tmp_path / "docs"
    docs.mkdir()
    for name in ["a.md", "b.md", "c.md"]:
        (docs / name).write_text(f"Content of {name}.", encoding="utf-8")
    (docs / "image.png").write_bytes(b"png")
    output = tmp_path / "out.md"
    completion = FakeCompletion()

    asyncio.run(_engine(completion).summarize(str(docs), output=str(output)))

    written = output.read_text(encoding="utf-8")
    assert completion.calls == 3
    assert written.count("<!-- AI:summary -->") == 3
    assert f"## Summary of {docs / 'a.md'}" in written


def test_summarize_directory_combined(tmp_path: Path) -> None:
    for name in ["a.md", "b.md"]:
        (tmp_path / name).write_text(f"Content of {name}.", encoding="utf-8")
    output = tmp_path / "out.txt"
    completion = FakeCompletion(responses=["one", "two", "overview"])

    asyncio.run(_engine(completion).summarize(str(tmp_path / "*.md"), output=str(output), combine=True))

    assert output.read_text(encoding="utf-8") == (
        "\n\n## Summary of 2 files\n\n<!-- AI:summary -->\noverview\n<!-- /AI -->\n"
    )


def test_summarize_all_files_failing_is_an_error(tmp_path: Path) -> None:
    for name in ["a.md", "b.md"]:
        (tmp_path / name).write_text("text", encoding="utf-8")

    with pytest.raises(RuntimeError, match="Failed to summarize all 2"):
        asyncio.run(_engine(FakeCompletion(fail_on={1, 2})).summarize(str(tmp_path)))


def test_summarize_zero_matches_does_nothing(tmp_path: Path, capsys) -> None:
    completion = FakeCompletion()

    result = asyncio.run(_engine(completion).summarize(str(tmp_path / "*.md")))

    assert result is None
    assert completion.calls == 0
    assert capsys.readouterr().out == ""


def test_ask_streams_and_appends(tmp_path: Path, capsys) -> None:
    output = tmp_path / "chat.md"
    completion = FakeCompletion(fragments=["Forty", "-two"])

    answer = asyncio.run(_engine(completion).ask("Meaning?", output=str(output)))

    assert answer == "Forty-two"
    assert "Forty-two" in capsys.readouterr().out
    assert output.read_text(encoding="utf-8") == (
        "\n\n## Question\nMeaning?\n\n<!-- AI:answer -->\nForty-two\n<!-- /AI -->\n"
    )


def test_ask_without_streaming_prints_block(capsys) -> None:
    completion = FakeCompletion(responses=["Answer"])

    asyncio.run(_engine(completion).ask("Q?", stream=False))

    assert "<!-- AI:answer -->\nAnswer\n<!-- /AI -->" in capsys.readouterr().out


DOC = "# Guide\n\nIntro.\n\n## Setup\n\nOld setup text.\n\n## Usage\n\nUse it."


def test_edit_section_replace_keeps_rest_and_backs_up(tmp_path: Path) -> None:
    path = tmp_path / "guide.md"
    path.write_text(DOC, encoding="utf-8")
    completion = FakeCompletion(responses=["## Setup\n\nNew setup text.\n"])

    asyncio.run(
        _engine(completion).edit(str(path), action="shorten", section="setup", replace=True)
    )

    updated = path.read_text(encoding="utf-8")
    assert "New setup text." in updated
    assert "Old setup text." not in updated
    assert updated.startswith("# Guide\n\nIntro.\n\n## Setup")
    assert updated.endswith("## Usage\n\nUse it.")
    assert "Shorten the following content" in completion.prompts[0]
    assert "## Usage" not in completion.prompts[0]
    backups = list(tmp_path.glob("guide.md.backup.*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == DOC


def test_edit_whole_file_to_output(tmp_path: Path) -> None:
    path = tmp_path / "guide.md"
    path.write_text(DOC, encoding="utf-8")
    output = tmp_path / "edits.md"
    completion = FakeCompletion(responses=["Edited"])

    asyncio.run(
        _engine(completion).edit(
            str(path), section="Nonexistent", instructions="Use British spelling", output=str(output)
        )
    )

    assert path.read_text(encoding="utf-8") == DOC
    assert "Additional instructions: Use British spelling" in completion.prompts[0]
    assert output.read_text(encoding="utf-8") == (
        "\n\n<!-- AI:edit -->\n## Edited version of guide.md\n\nEdited\n<!-- /AI -->\n"
    )


def test_edit_unknown_action_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "guide.md"
    path.write_text(DOC, encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown action"):
        asyncio.run(_engine(FakeCompletion()).edit(str(path), action="summon"))


def test_edit_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        asyncio.run(_engine(FakeCompletion()).edit(str(tmp_path / "absent.md")))


INSERT_DOC = """# Story

First part.

<!-- AI insert here -->
<!-- AI insert end -->

Middle part.

<!-- AI insert here -->
<!-- /AI -->

Last part."""


def test_insert_fills_blocks_and_backs_up(tmp_path: Path) -> None:
    path = tmp_path / "story.md"
    path.write_text(INSERT_DOC, encoding="utf-8")
    completion = FakeCompletion(responses=["second bridge\n", "first bridge"])

    count = asyncio.run(_engine(completion).insert(str(path)))

    assert count == 2
    assert completion.calls == 2
    # Blocks are processed last to first
    assert "Middle part." in completion.prompts[0]
    assert "Last part." in completion.prompts[0]
    assert path.read_text(encoding="utf-8") == (
        "# Story\n\nFirst part.\n\n"
        "<!-- AI:insert -->\nfirst bridge\n<!-- /AI -->\n\nMiddle part.\n\n"
        "<!-- AI:insert -->\nsecond bridge\n<!-- /AI -->\n\nLast part."
    )
    assert (tmp_path / "story.md.backup").read_text(encoding="utf-8") == INSERT_DOC


def test_insert_preview_makes_no_calls(tmp_path: Path, capsys) -> None:
    path = tmp_path / "story.md"
    path.write_text(INSERT_DOC, encoding="utf-8")
    completion = FakeCompletion()

    count = asyncio.run(_engine(completion).insert(str(path), preview=True))

    assert count == 2
    assert completion.calls == 0
    assert path.read_text(encoding="utf-8") == INSERT_DOC
    assert "Preview mode" in capsys.readouterr().out


def test_insert_without_blocks(tmp_path: Path) -> None:
    path = tmp_path / "plain.md"
    path.write_text("# Nothing here", encoding="utf-8")

    assert asyncio.run(_engine(FakeCompletion()).insert(str(path))) == 0


def test_list_sections(tmp_path: Path, capsys) -> None:
    path = tmp_path / "guide.md"
    path.write_text(DOC, encoding="utf-8")

    headers = list_sections(str(path))

    assert [h.title for h in headers] == ["Guide", "Setup", "Usage"]
    out = capsys.readouterr().out
    assert "1. Guide (line 1)" in out
    assert "2.   Setup (line 5)" in out


def test_summarize_bare_question_is_text(capsys) -> None:
    completion = FakeCompletion(responses=["Because."])

    asyncio.run(_engine(completion).summarize("Why?"))

    assert completion.calls == 1
    assert "Why?" in completion.prompts[0]
    assert "<!-- AI:summary -->\nBecause.\n<!-- /AI -->" in capsys.readouterr().out
