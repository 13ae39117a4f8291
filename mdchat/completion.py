"""
Text-generation handlers for the supported LLM providers.

Every handler exposes the same two coroutines:

- ``generate(prompt, system_instruction=None)`` returns the full response text.
- ``stream(prompt, system_instruction=None)`` yields text fragments in the
  order they arrive.

Provider selection, authentication and endpoints are resolved here from the
Settings object; callers only ever see these two operations. Calls are never
retried: a failure or timeout is logged and re-raised to the caller.
"""

import json
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional

import httpx
from openai import AsyncOpenAI
from google import genai
from google.genai import types

from .config import Settings, DEFAULT_OLLAMA_URL
from .io import read_prompts

logger = logging.getLogger(__name__)


class CompletionHandler(ABC):
    """
    Base class for provider-specific text generation.

    Attributes:
        model (str): Model identifier sent to the provider.
        system_instruction (str): Instruction used when a call supplies none.
        timeout_seconds (float): Upper bound for a single non-streaming call.
    """

    provider = "base"

    def __init__(self, model, system_instruction=None, timeout_seconds=120.0):
        self.model = model
        self.system_instruction = (
            system_instruction or read_prompts()["system_instructions"]["markdown"]
        )
        self.timeout_seconds = timeout_seconds

    def _instructions(self, system_instruction):
        return system_instruction or self.system_instruction

    @staticmethod
    def _check_prompt(prompt):
        if prompt is None or len(prompt.strip()) == 0:
            raise ValueError("Message cannot be empty.")

    async def generate(self, prompt: str, system_instruction: Optional[str] = None) -> str:
        """
        Generate a complete response for a prompt.

        Args:
            prompt: The user prompt
            system_instruction: Optional override for the system instruction

        Returns:
            The response text

        Raises:
            asyncio.TimeoutError: If the call exceeds timeout_seconds
            Exception: Any provider error, unchanged
        """
        self._check_prompt(prompt)
        try:
            return await asyncio.wait_for(
                self._generate(prompt, self._instructions(system_instruction)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"{self.provider} API call timed out after {self.timeout_seconds}s.")
            raise
        except Exception as e:
            logger.error(f"Unexpected error in {self.provider} API call: {str(e)}")
            raise

    async def stream(
        self, prompt: str, system_instruction: Optional[str] = None
    ) -> AsyncIterator[str]:
        """Yield response fragments for a prompt as they arrive."""
        self._check_prompt(prompt)
        try:
            async for fragment in self._stream(prompt, self._instructions(system_instruction)):
                if fragment:
                    yield fragment
        except Exception as e:
            logger.error(f"Unexpected error in {self.provider} streaming call: {str(e)}")
            raise

    @abstractmethod
    async def _generate(self, prompt, instructions) -> str:
        ...

    @abstractmethod
    def _stream(self, prompt, instructions) -> AsyncIterator[str]:
        ...

    async def close(self):
        """Release any client resources."""


class OpenAICompletionHandler(CompletionHandler):
    """Handles interactions with the OpenAI Responses API."""

    provider = "openai"

    def __init__(self, api_key, model, base_url=None, **kwargs):
        super().__init__(model, **kwargs)
        if not api_key:
            raise ValueError("OpenAI API key not provided.")

        # Initialize OpenAI client
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        logger.info(f"Initialized OpenAI client: model={self.model}")

    async def _generate(self, prompt, instructions):
        response = await self.client.responses.create(
            model=self.model,
            instructions=instructions,
            input=prompt,
        )
        return response.output_text

    async def _stream(self, prompt, instructions):
        stream = await self.client.responses.create(
            model=self.model,
            instructions=instructions,
            input=prompt,
            stream=True,
        )
        async for event in stream:
            if event.type == "response.output_text.delta":
                yield event.delta

    async def close(self):
        await self.client.close()


class GeminiCompletionHandler(CompletionHandler):
    """Handles interactions with the Google Gemini API."""

    provider = "gemini"

    def __init__(self, api_key, model, **kwargs):
        super().__init__(model, **kwargs)
        if not api_key:
            raise ValueError("Google Gemini API key not provided.")

        # Initialize Gemini client
        self.client = genai.Client(api_key=api_key)
        logger.info(f"Initialized Google Gemini client: model={self.model}")

    def _config(self, instructions):
        return types.GenerateContentConfig(system_instruction=instructions)

    async def _generate(self, prompt, instructions):
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=self._config(instructions),
        )
        return response.text or ""

    async def _stream(self, prompt, instructions):
        stream = await self.client.aio.models.generate_content_stream(
            model=self.model,
            contents=prompt,
            config=self._config(instructions),
        )
        async for chunk in stream:
            yield chunk.text or ""


class OllamaCompletionHandler(CompletionHandler):
    """Handles interactions with a local Ollama server."""

    provider = "ollama"

    def __init__(self, model, base_url=DEFAULT_OLLAMA_URL, **kwargs):
        super().__init__(model, **kwargs)
        self.base_url = (base_url or DEFAULT_OLLAMA_URL).rstrip("/")
        logger.info(f"Using Ollama at {self.base_url}: model={self.model}")

    def _payload(self, prompt, instructions, stream):
        return {
            "model": self.model,
            "prompt": prompt,
            "system": instructions,
            "stream": stream,
        }

    async def _generate(self, prompt, instructions):
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(
                f"{self.base_url}/api/generate",
                json=self._payload(prompt, instructions, stream=False),
            )
            response.raise_for_status()
            data = response.json()

        if "error" in data:
            raise ValueError(f"Ollama error: {data['error']}")
        return data.get("response", "")

    async def _stream(self, prompt, instructions):
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            async with client.stream(
                "POST",
                f"{self.base_url}/api/generate",
                json=self._payload(prompt, instructions, stream=True),
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if "error" in data:
                        raise ValueError(f"Ollama error: {data['error']}")
                    yield data.get("response", "")
                    if data.get("done"):
                        break


async def list_ollama_models(base_url: str = DEFAULT_OLLAMA_URL) -> List[str]:
    """Names of the models installed on an Ollama server."""
    async with httpx.AsyncClient(timeout=10) as client:
        response = await client.get(f"{base_url.rstrip('/')}/api/tags")
        response.raise_for_status()
        return [m["name"] for m in response.json().get("models", [])]


def new_completion_handler(settings: Settings, system_instruction=None) -> CompletionHandler:
    """Build the completion handler selected by the settings."""
    common = {
        "system_instruction": system_instruction,
        "timeout_seconds": settings.timeout_seconds,
    }
    model = settings.resolved_model

    if settings.provider == "openai":
        return OpenAICompletionHandler(
            api_key=settings.api_key, model=model, base_url=settings.base_url, **common
        )
    elif settings.provider == "gemini":
        return GeminiCompletionHandler(api_key=settings.api_key, model=model, **common)
    elif settings.provider == "ollama":
        return OllamaCompletionHandler(model=model, base_url=settings.base_url, **common)

    raise ValueError(f"Unknown provider '{settings.provider}'")
