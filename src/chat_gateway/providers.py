from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv


class Provider(StrEnum):
    OPENAI = "openai"              # Responses API
    OPENAI_CHAT = "openai_chat"    # Chat Completions API
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    MOONSHOT = "moonshot"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.OPENAI_CHAT: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.MOONSHOT: "MOONSHOT_API_KEY",
}

DISPLAY_NAMES: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OpenAI",
    Provider.OPENAI_CHAT: "OpenAI",
    Provider.ANTHROPIC: "Anthropic",
    Provider.GEMINI: "Gemini",
    Provider.MOONSHOT: "Moonshot",
}


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* from the environment or a `.env` file."""
    load_dotenv()
    env_var = _ENV_VARS.get(provider)
    if not env_var:
        raise RuntimeError(f"No config for {provider!s}")
    key = os.getenv(env_var)
    if not key:
        raise RuntimeError(f"{env_var} missing")
    return key


__all__ = ["Provider", "DISPLAY_NAMES", "get_api_key"]
