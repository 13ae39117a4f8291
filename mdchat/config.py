"""
Configuration for mdchat.

Two layers live here:

1. ConfigStore: a flat key/value mapping persisted as YAML in the user's home
   directory (``~/.mdchatrc``, or the path in ``MDCHAT_CONFIG``). JSON files
   written by earlier versions also load, since JSON is valid YAML, and their
   camelCase keys (``apiKey``, ``baseUrl``) are renamed on load.

2. Settings: the typed, validated configuration for a single command
   invocation, resolved once from CLI overrides, the stored config, the
   environment and defaults, then passed explicitly to whatever needs it.
"""

import os
import logging
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MDCHAT_CONFIG"
DEFAULT_CONFIG_NAME = ".mdchatrc"

PROVIDERS = ("openai", "gemini", "ollama")
DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "gemini": "gemini-2.5-flash",
    "ollama": "llama3.2",
}
API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}
DEFAULT_OLLAMA_URL = "http://localhost:11434"

# camelCase keys written by earlier versions
KEY_ALIASES = {
    "apiKey": "api_key",
    "baseUrl": "base_url",
}


def normalize_key(key: str) -> str:
    return KEY_ALIASES.get(key, key)


def default_config_path() -> str:
    """Location of the config file, honouring MDCHAT_CONFIG."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), DEFAULT_CONFIG_NAME)


class ConfigStore:
    """
    Persisted flat key/value configuration.

    Attributes:
        path (str): Location of the config file on disk.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or default_config_path()

    def load(self) -> Dict[str, Any]:
        """Load config from file; a missing file is an empty config."""
        if not os.path.exists(self.path):
            return {}

        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{self.path}' must contain a mapping, found {type(data).__name__}"
            )

        config = {}
        for key, value in data.items():
            name = normalize_key(str(key))
            # The snake_case spelling wins when both are present
            if name != key and name in data:
                continue
            config[name] = value
        return config

    def save(self, config: Dict[str, Any]) -> None:
        """Write the whole config mapping to file."""
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=True)
        logger.info(f"Configuration saved to {self.path}")

    def set(self, key: str, value: Any) -> Dict[str, Any]:
        """Update a single key/value in config and return the new mapping."""
        config = self.load()
        config[normalize_key(key)] = value
        self.save(config)
        return config

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(normalize_key(key), default)


class Settings(BaseModel):
    """Resolved settings for one command invocation."""

    provider: str = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: float = Field(default=120.0, gt=0)

    # Summarization
    max_input_tokens: int = Field(default=15000, ge=1)
    chunk_delay_seconds: float = Field(default=0.5, ge=0)
    file_delay_seconds: float = Field(default=1.0, ge=0)
    max_file_size_mb: float = Field(default=10.0, gt=0)
    combine_threshold: int = Field(default=5, ge=1)

    @property
    def resolved_model(self) -> str:
        """Configured model, or the provider's default."""
        return self.model or DEFAULT_MODELS.get(self.provider, "")


def resolve_settings(
    config: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """
    Build Settings from stored config and CLI overrides.

    Precedence: CLI overrides, then the stored config, then the provider's
    API key environment variable, then defaults.

    Args:
        config: Mapping loaded from the ConfigStore
        overrides: Values given on the command line; None values are ignored

    Returns:
        Validated Settings instance
    """
    values = {}
    known = set(Settings.model_fields.keys())

    for source in (config or {}, overrides or {}):
        for key, value in source.items():
            if key in known and value is not None and value != "":
                values[key] = value

    provider = str(values.get("provider", "openai")).lower()
    if provider not in PROVIDERS:
        raise ValueError(
            f"Unknown provider '{provider}'. Choose one of: {', '.join(PROVIDERS)}"
        )
    values["provider"] = provider

    # Fall back to environment for API keys
    if "api_key" not in values and provider in API_KEY_ENV_VARS:
        env_key = os.environ.get(API_KEY_ENV_VARS[provider])
        if env_key:
            values["api_key"] = env_key

    if provider == "ollama" and "base_url" not in values:
        values["base_url"] = DEFAULT_OLLAMA_URL

    return Settings(**values)


def mask_secret(value: Any, visible: int = 8) -> str:
    """Show only the first few characters of a secret."""
    text = str(value)
    return f"{text[:visible]}..."
