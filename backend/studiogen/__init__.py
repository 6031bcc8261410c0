"""Studio generation core - image and video generation orchestration.

This module provides startup validation functions to ensure a provider
credential is available before any generation call is made.
Call validate_credentials() during application startup.
"""

import logging

from studiogen.errors import ConfigurationError

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def validate_credentials() -> None:
    """Validate that an API key is configured.

    This function should be called during application startup to fail fast
    with clear instructions if the credential is missing.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    from studiogen.services.genai_client import get_api_key

    try:
        key = get_api_key()
    except ConfigurationError as e:
        raise ConfigurationError(
            "No Gemini API key found. Configure one of:\n"
            "  STUDIOGEN_GOOGLE__API_KEY=<key> (environment or .env)\n"
            "  GEMINI_API_KEY=<key> or API_KEY=<key>\n"
            "  google.api_key in config.yaml\n"
            "Keys are issued at https://aistudio.google.com/apikey"
        ) from e
    logger.info(f"API key validated (ending ...{key[-4:]})")
