"""Typed failures raised by the generation core.

Every error carries a human-readable ``message``. Provider exceptions
(google-genai ``APIError`` and httpx ``HTTPStatusError``) are translated into
this taxonomy by ``classify_provider_error`` at the call sites that talk to the
provider, so callers never have to inspect loosely-shaped error objects.

Usage:
    from studiogen.errors import StudioError, SafetyRejectedError

    try:
        result = await generate_image(...)
    except SafetyRejectedError:
        ...
"""

from typing import Optional

import httpx
from google.genai.errors import APIError

# HTTP status codes treated as transient (rate-limited / overloaded)
TRANSIENT_STATUS_CODES = frozenset({429, 503})

# Status codes and message fragments that mean the credential must be replaced
_REAUTH_STATUS_CODES = frozenset({401, 403})
_REAUTH_KEYWORDS = (
    "api key not valid",
    "api_key_invalid",
    "api key expired",
    "requested entity was not found",
    "permission denied",
)


class StudioError(Exception):
    """Base class for all generation-core failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(StudioError):
    """No API credential is configured. Never retried."""


class ProviderError(StudioError):
    """The provider rejected a call with a non-transient status.

    Keeps the status code and provider message so the calling layer can
    decide whether to prompt for a new credential.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def requires_reauthentication(self) -> bool:
        """True when the failure indicates an invalid or expired credential."""
        if self.status_code in _REAUTH_STATUS_CODES:
            return True
        lowered = self.message.lower()
        return any(kw in lowered for kw in _REAUTH_KEYWORDS)


class TransientServiceError(ProviderError):
    """Rate-limited (429) or overloaded (503). Retried by the retry policy."""


class SafetyRejectedError(StudioError):
    """The provider refused the prompt on content-policy grounds."""


class EmptyResponseError(StudioError):
    """The provider returned no candidate result."""


class ExtractionError(StudioError):
    """No inline binary part could be found in the provider response."""


class VideoGenerationError(StudioError):
    """A remote video job finished with an error payload."""


class MissingDownloadLinkError(StudioError):
    """A video job reported success but exposed no downloadable video."""


class ReferenceLimitError(StudioError):
    """More reference media than the generation mode accepts."""


class PollTimeoutError(StudioError):
    """An optional poll bound (iteration count or duration) was exceeded."""


def _status_of(exc: BaseException) -> Optional[int]:
    """Return the HTTP-equivalent status code of a provider exception."""
    if isinstance(exc, APIError):
        return getattr(exc, "code", None)
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def classify_provider_error(exc: BaseException) -> StudioError:
    """Translate a provider exception into the closed error taxonomy.

    Already-classified errors are returned unchanged. Callers re-raise the
    result with ``raise classify_provider_error(exc) from exc``.
    """
    if isinstance(exc, StudioError):
        return exc

    status = _status_of(exc)
    if isinstance(exc, APIError):
        message = exc.message or str(exc)
    else:
        message = str(exc)

    if status in TRANSIENT_STATUS_CODES:
        return TransientServiceError(message, status_code=status)
    return ProviderError(message, status_code=status)
