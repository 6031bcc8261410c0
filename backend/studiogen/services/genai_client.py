"""Gemini API client wrapper using google-genai SDK.

This module provides credential-aware clients for the Gemini Developer API.
The API key is read from settings, falling back to the GEMINI_API_KEY and
API_KEY environment variables. A missing key fails closed with
ConfigurationError before any provider call is made.

Usage:
    from studiogen.services.genai_client import get_genai_client

    client = get_genai_client()
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from google import genai
from google.genai import types

from studiogen.config import settings
from studiogen.errors import ConfigurationError

# Load .env for GEMINI_API_KEY / API_KEY
load_dotenv(Path(__file__).resolve().parent.parent.parent.parent / ".env")

# Per-credential client cache
_clients: dict[str, genai.Client] = {}

_ENV_KEYS = ("GEMINI_API_KEY", "API_KEY")


def get_api_key() -> str:
    """Return the configured API key.

    Raises:
        ConfigurationError: If no credential is configured anywhere.
    """
    if settings.google.api_key:
        return settings.google.api_key
    for name in _ENV_KEYS:
        value = os.environ.get(name)
        if value:
            return value
    raise ConfigurationError(
        "No API key configured. Set STUDIOGEN_GOOGLE__API_KEY, GEMINI_API_KEY "
        "or API_KEY, or add google.api_key to config.yaml."
    )


def get_genai_client(api_key: str | None = None) -> genai.Client:
    """Get or create a client for the given credential.

    Clients are cached per key so a rotated key picks up a fresh client
    while repeated calls with the same key are cheap.

    Args:
        api_key: Explicit key. Defaults to get_api_key().

    Returns:
        genai.Client: Configured client instance for the Gemini API
    """
    key = api_key or get_api_key()

    if key not in _clients:
        http_options = None
        if settings.google.api_version:
            http_options = types.HttpOptions(api_version=settings.google.api_version)

        _clients[key] = genai.Client(api_key=key, http_options=http_options)

    return _clients[key]
