import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from mdchat.completion import CompletionHandler


class FakeCompletion(CompletionHandler):
    """Scripted completion handler that records every prompt it receives."""

    provider = "fake"

    def __init__(self, responses=None, fail_on=(), fragments=None) -> None:
        super().__init__(model="fake-model", timeout_seconds=5)
        self.responses = list(responses or [])
        self.fail_on = set(fail_on)
        self.fragments = list(fragments or ["Hello", " ", "world"])
        self.prompts: list[str] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def _generate(self, prompt, instructions):
        self.prompts.append(prompt)
        if self.calls in self.fail_on:
            raise RuntimeError(f"call {self.calls} failed")
        if self.responses:
            return self.responses.pop(0)
        return f"response {self.calls}"

    async def _stream(self, prompt, instructions):
        self.prompts.append(prompt)
        for fragment in self.fragments:
            yield fragment

    async def close(self):
        self.closed = True


async def no_sleep(seconds: float) -> None:
    del seconds


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    config_path = tmp_path / "mdchatrc.yaml"
    monkeypatch.setenv("MDCHAT_CONFIG", str(config_path))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    yield config_path
    root = logging.getLogger()
    for handler in list(root.handlers):
        if not type(handler).__module__.startswith("_pytest"):
            root.removeHandler(handler)
