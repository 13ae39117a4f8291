import asyncio
from pathlib import Path

import pytest
import yaml

from conftest import FakeCompletion
from mdchat.args import parse_mdchat_arguments
from mdchat.config import ConfigStore
from mdchat.configure import get_best_ollama_model, run_config_command
from mdchat.mdchat import main


@pytest.fixture
def fake_handler(monkeypatch: pytest.MonkeyPatch) -> FakeCompletion:
    completion = FakeCompletion()
    monkeypatch.setattr("mdchat.mdchat.new_completion_handler", lambda settings: completion)
    return completion


def test_parser_defaults() -> None:
    args = parse_mdchat_arguments(["edit", "README.md"])

    assert args.command == "edit"
    assert args.action == "improve"
    assert args.replace is False
    assert args.provider is None


def test_parser_rejects_unknown_action() -> None:
    with pytest.raises(SystemExit):
        parse_mdchat_arguments(["edit", "README.md", "--action", "summon"])


def test_zero_match_glob_exits_cleanly(tmp_path: Path, fake_handler: FakeCompletion) -> None:
    output = tmp_path / "out.md"

    code = main(["summarize", str(tmp_path / "*.md"), "-o", str(output)])

    assert code == 0
    assert fake_handler.calls == 0
    assert not output.exists()
    assert fake_handler.closed


def test_missing_file_exits_with_error(tmp_path: Path, fake_handler: FakeCompletion, capsys) -> None:
    code = main(["edit", str(tmp_path / "absent.md")])

    assert code == 1
    assert "File not found:" in capsys.readouterr().err


def test_generation_error_exits_with_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    completion = FakeCompletion(fail_on={1})
    monkeypatch.setattr("mdchat.mdchat.new_completion_handler", lambda settings: completion)

    code = main(["summarize", "Some direct text to summarize."])

    assert code == 1
    assert "Error: call 1 failed" in capsys.readouterr().err
    assert completion.closed


def test_summarize_text_to_output(tmp_path: Path, fake_handler: FakeCompletion) -> None:
    output = tmp_path / "out.md"

    code = main(["-q", "summarize", "Some direct text to summarize.", "-o", str(output)])

    assert code == 0
    assert output.read_text(encoding="utf-8") == (
        "\n\n## Summary\n\n<!-- AI:summary -->\nresponse 1\n<!-- /AI -->\n"
    )


def test_provider_override_reaches_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def factory(settings):
        seen["settings"] = settings
        return FakeCompletion()

    monkeypatch.setattr("mdchat.mdchat.new_completion_handler", factory)

    assert main(["--provider", "ollama", "--model", "mistral", "ask", "Hi", "--no_stream"]) == 0
    assert seen["settings"].provider == "ollama"
    assert seen["settings"].resolved_model == "mistral"


def test_config_set_get_and_list(isolated_config: Path, capsys) -> None:
    assert main(["config", "set", "provider", "gemini"]) == 0
    assert main(["config", "set", "api_key", "abcdefghijklmnop"]) == 0
    capsys.readouterr()

    assert main(["config", "get", "provider"]) == 0
    assert capsys.readouterr().out == "provider = gemini\n"

    assert main(["config", "list"]) == 0
    listing = capsys.readouterr().out
    assert "api_key: abcdefgh..." in listing
    assert "ijklmnop" not in listing

    assert yaml.safe_load(isolated_config.read_text(encoding="utf-8")) == {
        "provider": "gemini",
        "api_key": "abcdefghijklmnop",
    }


def test_config_set_requires_value() -> None:
    assert main(["config", "set", "provider"]) == 1


def test_stored_config_selects_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def factory(settings):
        seen["settings"] = settings
        return FakeCompletion()

    monkeypatch.setattr("mdchat.mdchat.new_completion_handler", factory)
    main(["config", "set", "provider", "ollama"])

    assert main(["ask", "Hi", "--no_stream"]) == 0
    assert seen["settings"].provider == "ollama"


def test_sections_command(tmp_path: Path, capsys) -> None:
    path = tmp_path / "doc.md"
    path.write_text("# One\n\n## Two\n", encoding="utf-8")

    assert main(["sections", str(path)]) == 0
    assert "2.   Two (line 3)" in capsys.readouterr().out


def test_best_ollama_model_preference() -> None:
    assert get_best_ollama_model([]) is None
    assert get_best_ollama_model(["phi3:mini", "mistral:latest"]) == "mistral:latest"
    assert get_best_ollama_model(["custom-model"]) == "custom-model"


def test_interactive_setup_for_ollama(monkeypatch: pytest.MonkeyPatch, isolated_config: Path) -> None:
    async def fake_models(base_url):
        assert base_url == "http://localhost:11434"
        return ["phi3:mini", "llama3.1:8b"]

    monkeypatch.setattr("mdchat.configure.list_ollama_models", fake_models)
    answers = iter(["3", "", ""])
    store = ConfigStore(str(isolated_config))

    code = asyncio.run(run_config_command(store, "setup", prompt=lambda message: next(answers)))

    assert code == 0
    assert store.load() == {
        "provider": "ollama",
        "base_url": "http://localhost:11434",
        "model": "llama3.1:8b",
    }


def test_interactive_setup_for_openai(isolated_config: Path) -> None:
    answers = iter(["openai", "sk-secret", "gpt-4.1"])
    store = ConfigStore(str(isolated_config))

    asyncio.run(run_config_command(store, "setup", prompt=lambda message: next(answers)))

    assert store.load() == {"provider": "openai", "api_key": "sk-secret", "model": "gpt-4.1"}


def test_config_list_masks_camel_case_key(isolated_config: Path, capsys) -> None:
    isolated_config.write_text(
        '{"provider": "openai", "apiKey": "sk-secretsecretsecret"}', encoding="utf-8"
    )

    assert main(["config", "list"]) == 0

    listing = capsys.readouterr().out
    assert "api_key: sk-secre..." in listing
    assert "sk-secretsecretsecret" not in listing


def test_config_set_warns_on_unknown_key(capsys) -> None:
    assert main(["config", "set", "colour", "blue"]) == 0

    assert "Unknown config key 'colour'" in capsys.readouterr().err


def test_edit_directory_exits_with_error(tmp_path: Path, fake_handler: FakeCompletion, capsys) -> None:
    code = main(["edit", str(tmp_path)])

    assert code == 1
    assert "Cannot edit a directory" in capsys.readouterr().err
    assert fake_handler.calls == 0


def test_unreadable_file_exits_with_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_handler: FakeCompletion, capsys
) -> None:
    path = tmp_path / "locked.md"
    path.write_text("# Locked", encoding="utf-8")

    def deny(filepath):
        raise PermissionError(13, "Permission denied", filepath)

    monkeypatch.setattr("mdchat.io.FileHandler.read_text", staticmethod(deny))

    code = main(["edit", str(path)])

    assert code == 1
    assert f"Permission denied: {path}" in capsys.readouterr().err
    assert fake_handler.calls == 0


def test_interactive_setup_survives_bad_ollama_reply(
    monkeypatch: pytest.MonkeyPatch, isolated_config: Path
) -> None:
    async def broken_models(base_url):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")

    monkeypatch.setattr("mdchat.configure.list_ollama_models", broken_models)
    answers = iter(["ollama", "", ""])
    store = ConfigStore(str(isolated_config))

    code = asyncio.run(run_config_command(store, "setup", prompt=lambda message: next(answers)))

    assert code == 0
    assert store.load()["model"] == "llama3.2"
