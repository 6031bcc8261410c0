"""One-shot image generation with Gemini image models.

This module implements the image path of the studio:
- Optional reference image(s) sent as inline parts ahead of the prompt
- Transient 429/503 failures retried with exponential backoff
- Safety rejections surfaced from the response payload, never retried
- First inline image part returned as a data URI
- One usage event per call, whatever the outcome

Usage:
    from studiogen.pipeline.image_gen import generate_image

    result = await generate_image("a red fox", "1:1", "1K", ImageModel.FAST)
    html = f'<img src="{result.uri}">'
"""

import asyncio
import base64
import logging
from typing import Awaitable, Callable, Optional, Sequence

import httpx
from google.genai import types
from google.genai.errors import APIError

from studiogen.config import settings
from studiogen.errors import (
    EmptyResponseError,
    ExtractionError,
    SafetyRejectedError,
    classify_provider_error,
)
from studiogen.schemas.generation import (
    AspectRatio,
    GenerationRequest,
    ImageModel,
    MediaResult,
    ReferenceMedia,
)
from studiogen.services.genai_client import get_api_key, get_genai_client
from studiogen.services.request_builder import ImageRequest, build_image_request
from studiogen.services.retry import with_retry
from studiogen.services.usage import UsageRecorder, record_usage

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME_TYPE = "image/png"

# Finish reasons that mean the provider refused the content
_SAFETY_FINISH_REASONS = {
    "SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "IMAGE_SAFETY",
    "IMAGE_PROHIBITED_CONTENT",
}


def _reason_name(reason) -> Optional[str]:
    if reason is None:
        return None
    return str(getattr(reason, "value", reason)).upper()


async def _generate_content(client, image_request: ImageRequest):
    """Submit the request, translating provider failures at the boundary."""
    try:
        return await client.aio.models.generate_content(
            model=image_request.model,
            contents=image_request.contents,
            config=image_request.config,
        )
    except (APIError, httpx.HTTPError) as exc:
        raise classify_provider_error(exc) from exc


def extract_image_result(response: Optional[types.GenerateContentResponse]) -> MediaResult:
    """Turn a generate_content response into a data URI result.

    Checks, in order: missing candidates, safety finish reason, first inline
    binary part.

    Raises:
        EmptyResponseError: No candidate in the response.
        SafetyRejectedError: The first candidate was stopped by a safety filter.
        ExtractionError: No part carries inline binary data.
    """
    if response is None or not response.candidates:
        block_reason = None
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None:
            block_reason = _reason_name(feedback.block_reason)
        detail = f" (blocked: {block_reason})" if block_reason else ""
        raise EmptyResponseError(f"No valid response received from the provider{detail}")

    candidate = response.candidates[0]

    reason = _reason_name(candidate.finish_reason)
    if reason in _SAFETY_FINISH_REASONS:
        raise SafetyRejectedError(
            "The request triggered the safety filters. Try a different description."
        )

    parts = candidate.content.parts if candidate.content and candidate.content.parts else []
    for part in parts:
        if part.inline_data and part.inline_data.data:
            mime_type = part.inline_data.mime_type or DEFAULT_IMAGE_MIME_TYPE
            payload = base64.b64encode(part.inline_data.data).decode("ascii")
            return MediaResult(uri=f"data:{mime_type};base64,{payload}", mime_type=mime_type)

    raise ExtractionError("The image could not be extracted from the AI response.")


async def _run_image_generation(
    prompt: str,
    aspect_ratio: AspectRatio | str,
    resolution: Optional[str],
    model: ImageModel | str,
    reference_images: Sequence[ReferenceMedia],
    client,
    recorder: Optional[UsageRecorder],
    sleep: Callable[[float], Awaitable[None]],
) -> MediaResult:
    model = ImageModel(model)
    try:
        api_key = get_api_key()
        request = GenerationRequest(
            prompt=prompt,
            aspect_ratio=aspect_ratio,
            resolution=resolution,
            model=model,
            reference_media=list(reference_images),
        )
        image_request = build_image_request(request)
        client = client or get_genai_client(api_key)

        response = await with_retry(
            lambda: _generate_content(client, image_request),
            max_attempts=settings.generation.retry_max_attempts,
            initial_delay=settings.generation.retry_initial_delay,
            sleep=sleep,
        )
        result = extract_image_result(response)
    except Exception:
        record_usage(recorder, model, False)
        raise

    record_usage(recorder, model, True)
    logger.info(
        f"Generated {result.mime_type} image with {image_request.model} "
        f"({len(request.reference_media)} reference(s))"
    )
    return result


async def generate_image(
    prompt: str,
    aspect_ratio: AspectRatio | str,
    resolution: Optional[str],
    model: ImageModel | str,
    reference_image: Optional[ReferenceMedia] = None,
    *,
    client=None,
    recorder: Optional[UsageRecorder] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> MediaResult:
    """Generate one image from a prompt and an optional reference image.

    Args:
        prompt: Text description of the image
        aspect_ratio: Aspect ratio; "A4-document" is sent as "3:4"
        resolution: Size tier ("1K", "2K", "4K"); only honoured by the
            high-quality model
        model: Model classification (fast or high-quality)
        reference_image: Optional image sent ahead of the prompt
        client: google-genai client; defaults to the cached client for the
            configured key
        recorder: Usage collaborator notified once with the final outcome
        sleep: Awaitable sleep used between retries

    Returns:
        MediaResult whose uri is ``data:<mime>;base64,<payload>``

    Raises:
        ConfigurationError: No API key configured.
        TransientServiceError: Still rate-limited/overloaded after retries.
        ProviderError: Non-transient provider rejection.
        SafetyRejectedError, EmptyResponseError, ExtractionError: see
            extract_image_result.
    """
    references = [reference_image] if reference_image is not None else []
    return await _run_image_generation(
        prompt, aspect_ratio, resolution, model, references, client, recorder, sleep,
    )


async def compose_image(
    prompt: str,
    aspect_ratio: AspectRatio | str,
    resolution: Optional[str],
    model: ImageModel | str,
    reference_images: Sequence[ReferenceMedia],
    *,
    client=None,
    recorder: Optional[UsageRecorder] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> MediaResult:
    """Generate an image that combines up to two reference images.

    Same pipeline and errors as generate_image; additionally raises
    ReferenceLimitError when more references are given than the image
    composition cap allows.
    """
    return await _run_image_generation(
        prompt, aspect_ratio, resolution, model, reference_images, client, recorder, sleep,
    )
