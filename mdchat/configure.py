"""Handlers for the ``mdchat config`` subcommands."""

import logging
from typing import Callable, List, Optional

import httpx

from .config import (
    API_KEY_ENV_VARS,
    DEFAULT_MODELS,
    DEFAULT_OLLAMA_URL,
    PROVIDERS,
    ConfigStore,
    Settings,
    mask_secret,
    normalize_key,
)
from .completion import list_ollama_models

logger = logging.getLogger(__name__)

# Keys whose values are never printed in full
SECRET_KEYS = {"api_key", "apiKey"}

# Preferred local models, best first
OLLAMA_PREFERENCES = [
    "llama3.2",
    "llama3.1",
    "llama3",
    "mistral",
    "qwen2.5",
    "gemma2",
    "phi3",
]


def get_best_ollama_model(models: List[str]) -> Optional[str]:
    """Pick the most preferred installed model, or the first one available."""
    if not models:
        return None
    for preferred in OLLAMA_PREFERENCES:
        for name in models:
            if name == preferred or name.startswith(f"{preferred}:"):
                return name
    return models[0]


def format_value(key: str, value) -> str:
    if key in SECRET_KEYS and value:
        return mask_secret(value)
    return str(value)


async def run_config_command(
    store: ConfigStore,
    action: str,
    key: Optional[str] = None,
    value: Optional[str] = None,
    prompt: Callable[[str], str] = input,
) -> int:
    """
    Run one config action and return the process exit code.

    Args:
        store: Persisted configuration
        action: One of setup, set, get, list
        key: Config key for set and get
        value: New value for set
        prompt: Reads one line of user input during setup
    """
    if action == "setup":
        await interactive_setup(store, prompt=prompt)
        return 0

    if action == "set":
        if key is None or value is None:
            logger.error("Usage: mdchat config set <key> <value>")
            return 1
        key = normalize_key(key)
        if key not in Settings.model_fields:
            logger.warning(f"Unknown config key '{key}'; it is stored but not used.")
        store.set(key, value)
        print(f"Set {key} = {format_value(key, value)}")
        return 0

    if action == "get":
        if key is None:
            logger.error("Usage: mdchat config get <key>")
            return 1
        key = normalize_key(key)
        stored = store.get(key)
        if stored is None:
            print(f"{key} is not set")
        else:
            print(f"{key} = {format_value(key, stored)}")
        return 0

    if action == "list":
        config = store.load()
        if not config:
            print(f"No configuration found at {store.path}")
            return 0
        print(f"Configuration ({store.path}):")
        for name in sorted(config):
            print(f"  {name}: {format_value(name, config[name])}")
        return 0

    logger.error(f"Unknown config action '{action}'")
    return 1


async def interactive_setup(store: ConfigStore, prompt: Callable[[str], str] = input) -> dict:
    """Walk the user through choosing a provider, model and credentials."""
    config = store.load()
    print("mdchat setup\n")
    print("Available providers:")
    for i, name in enumerate(PROVIDERS, start=1):
        print(f"  {i}. {name}")

    current = config.get("provider", "openai")
    choice = prompt(f"Choose provider [{current}]: ").strip().lower()
    if choice.isdigit() and 1 <= int(choice) <= len(PROVIDERS):
        choice = PROVIDERS[int(choice) - 1]
    provider = choice or current
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown provider '{provider}'. Choose one of: {', '.join(PROVIDERS)}")
    config["provider"] = provider

    if provider == "ollama":
        base_url = prompt(f"Ollama URL [{DEFAULT_OLLAMA_URL}]: ").strip() or DEFAULT_OLLAMA_URL
        config["base_url"] = base_url
        default_model = DEFAULT_MODELS["ollama"]
        try:
            models = await list_ollama_models(base_url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Could not reach Ollama at {base_url}: {e}")
            models = []
        if models:
            print(f"Installed models: {', '.join(models)}")
            default_model = get_best_ollama_model(models)
        else:
            print(f"No installed models found. Try: ollama pull {default_model}")
        config.pop("api_key", None)
    else:
        default_model = DEFAULT_MODELS[provider]
        env_var = API_KEY_ENV_VARS[provider]
        if provider == "openai":
            print("OpenAI keys start with 'sk-'.")
        key_prompt = f"API key (leave blank to use ${env_var}): "
        api_key = prompt(key_prompt).strip()
        if api_key:
            if provider == "openai" and not api_key.startswith("sk-"):
                logger.warning("This does not look like an OpenAI key.")
            config["api_key"] = api_key
        else:
            config.pop("api_key", None)
        config.pop("base_url", None)

    model = prompt(f"Model [{default_model}]: ").strip() or default_model
    config["model"] = model

    store.save(config)
    print(f"\nConfiguration saved to {store.path}")
    return config
