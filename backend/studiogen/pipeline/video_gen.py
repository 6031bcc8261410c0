"""Video generation using Veo long-running operations.

This module implements the video path of the studio:
- Submit a Veo job with prompt, optional seed image, aspect ratio, resolution
- Poll the long-running operation on a fixed interval until it is terminal
- Surface remote job failures and inconsistent terminal states as typed errors
- Download the finished clip with the API key and store it as a local blob
- One usage event per call, whatever the outcome

Retry boundaries: submission, every individual status fetch and the download
are each wrapped by the retry policy. A transient fault while polling retries
that status fetch and keeps polling the same operation; it never resubmits the
job.

Usage:
    from studiogen.pipeline.video_gen import generate_video

    blob = await generate_video("a sunset", "16:9", "720p", [])
    try:
        play(blob.uri)
    finally:
        blob.release()
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import httpx
from google.genai import types
from google.genai.errors import APIError

from studiogen.config import settings
from studiogen.errors import (
    MissingDownloadLinkError,
    PollTimeoutError,
    SafetyRejectedError,
    VideoGenerationError,
    classify_provider_error,
)
from studiogen.schemas.generation import (
    AspectRatio,
    GenerationRequest,
    ImageModel,
    OperationHandle,
    ReferenceMedia,
)
from studiogen.services.blob_store import BlobStore, MediaBlob
from studiogen.services.genai_client import get_api_key, get_genai_client
from studiogen.services.request_builder import VideoRequest, build_video_request
from studiogen.services.retry import with_retry
from studiogen.services.usage import UsageRecorder, record_usage

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_MIME_TYPE = "video/mp4"

Op = TypeVar("Op")


# ---------------------------------------------------------------------------
# Provider calls (exceptions translated at the boundary)
# ---------------------------------------------------------------------------
async def _submit_video_job(client, video_request: VideoRequest):
    """Submit a Veo generation job and return the initial operation."""
    try:
        return await client.aio.models.generate_videos(
            model=video_request.model,
            prompt=video_request.prompt,
            image=video_request.image,
            config=video_request.config,
        )
    except (APIError, httpx.HTTPError) as exc:
        raise classify_provider_error(exc) from exc


async def _get_operation(client, handle: OperationHandle):
    """Fetch the current status of a video job by its handle."""
    op_obj = types.GenerateVideosOperation(name=handle)
    try:
        return await client.aio.operations.get(operation=op_obj)
    except (APIError, httpx.HTTPError) as exc:
        raise classify_provider_error(exc) from exc


async def download_video(
    http_client: httpx.AsyncClient, uri: str, api_key: str
) -> tuple[bytes, str]:
    """Fetch a finished video, appending the API key as a query parameter.

    Returns:
        (video bytes, mime type)
    """
    try:
        response = await http_client.get(uri, params={"key": api_key})
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise classify_provider_error(exc) from exc

    mime_type = response.headers.get("content-type", "").split(";")[0].strip()
    return response.content, mime_type or DEFAULT_VIDEO_MIME_TYPE


# ---------------------------------------------------------------------------
# Polling primitive
# ---------------------------------------------------------------------------
async def poll_operation(
    operation: Op,
    fetch: Callable[[], Awaitable[Op]],
    *,
    interval: float,
    max_polls: Optional[int] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Op:
    """Re-fetch an operation every ``interval`` seconds until ``done``.

    With ``max_polls`` and ``timeout`` left as None the loop is unbounded.
    Cancelling the awaiting task stops polling at the next sleep or fetch;
    the remote job itself keeps running.

    Raises:
        PollTimeoutError: If a configured bound is exceeded before the
            operation is terminal.
    """
    polls = 0
    deadline = asyncio.timeout(timeout)

    try:
        async with deadline:
            while not operation.done:
                if max_polls is not None and polls >= max_polls:
                    raise PollTimeoutError(
                        f"Operation did not complete after {polls} status checks"
                    )

                await sleep(interval)
                operation = await fetch()
                polls += 1
                logger.debug(f"Poll {polls}: done={operation.done}")
    except TimeoutError as e:
        # A TimeoutError raised by fetch itself is not ours to translate
        if not deadline.expired():
            raise
        raise PollTimeoutError(
            f"Operation did not complete after {timeout:g} seconds"
        ) from e

    return operation


# ---------------------------------------------------------------------------
# Terminal-state interpretation
# ---------------------------------------------------------------------------
def _operation_error_message(error) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


def resolve_generated_video(operation) -> types.Video:
    """Return the first generated video of a terminal operation.

    Raises:
        VideoGenerationError: The job reported an error payload.
        SafetyRejectedError: Every output was removed by the RAI filter.
        MissingDownloadLinkError: Done without error, but no video exposed.
    """
    if operation.error:
        raise VideoGenerationError(_operation_error_message(operation.error))

    response = operation.response
    videos = list(response.generated_videos or []) if response else []
    video = videos[0].video if videos else None

    if video is None or not (video.uri or video.video_bytes):
        filtered = getattr(response, "rai_media_filtered_count", None) if response else None
        if filtered:
            reasons = getattr(response, "rai_media_filtered_reasons", None) or []
            detail = f": {'; '.join(reasons)}" if reasons else ""
            raise SafetyRejectedError(f"Video removed by the safety filters{detail}")
        raise MissingDownloadLinkError("Video generation finished without a download link.")

    return video


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
async def generate_video(
    prompt: str,
    aspect_ratio: AspectRatio | str,
    resolution: Optional[str],
    reference_images: Sequence[ReferenceMedia] = (),
    *,
    client=None,
    recorder: Optional[UsageRecorder] = None,
    blob_store: Optional[BlobStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> MediaBlob:
    """Generate a video clip and return a local blob handle to it.

    Only the first reference image is sent as the seed image; up to three are
    accepted.

    The returned MediaBlob is owned by the caller, which must call
    ``release()`` once the clip is no longer displayed.

    Args:
        prompt: Text description of the clip
        aspect_ratio: Aspect ratio ("16:9", "9:16", ...)
        resolution: "720p" or "1080p"; None leaves the provider default
        reference_images: Zero to three reference images
        client: google-genai client; defaults to the cached client
        recorder: Usage collaborator notified once with the final outcome
        blob_store: Where the downloaded clip is stored
        http_client: httpx client for the download fetch
        sleep: Awaitable sleep used for retries and poll intervals

    Raises:
        ConfigurationError: No API key configured.
        ReferenceLimitError: More than three reference images.
        TransientServiceError, ProviderError: Provider failures.
        VideoGenerationError: The remote job failed.
        SafetyRejectedError: The output was filtered.
        MissingDownloadLinkError: Done without a downloadable video.
        PollTimeoutError: Only when a poll bound is configured.
    """
    gen = settings.generation
    retry_kwargs = dict(
        max_attempts=gen.retry_max_attempts,
        initial_delay=gen.retry_initial_delay,
        sleep=sleep,
    )

    try:
        api_key = get_api_key()
        request = GenerationRequest(
            prompt=prompt,
            aspect_ratio=aspect_ratio,
            resolution=resolution,
            model=ImageModel.VIDEO,
            reference_media=list(reference_images),
        )
        video_request = build_video_request(request)
        client = client or get_genai_client(api_key)

        operation = await with_retry(
            lambda: _submit_video_job(client, video_request), **retry_kwargs
        )
        handle = OperationHandle(operation.name)
        logger.info(f"Submitted video job {handle} ({video_request.model})")

        operation = await poll_operation(
            operation,
            lambda: with_retry(lambda: _get_operation(client, handle), **retry_kwargs),
            interval=gen.video_poll_interval,
            max_polls=gen.video_poll_max,
            timeout=gen.video_poll_timeout,
            sleep=sleep,
        )
        video = resolve_generated_video(operation)

        if video.video_bytes:
            data = video.video_bytes
            mime_type = video.mime_type or DEFAULT_VIDEO_MIME_TYPE
        elif http_client is not None:
            data, mime_type = await with_retry(
                lambda: download_video(http_client, video.uri, api_key), **retry_kwargs
            )
        else:
            async with httpx.AsyncClient(
                timeout=gen.download_timeout, follow_redirects=True
            ) as owned_client:
                data, mime_type = await with_retry(
                    lambda: download_video(owned_client, video.uri, api_key), **retry_kwargs
                )

        blob = (blob_store or BlobStore()).save(data, mime_type)
    except Exception:
        record_usage(recorder, ImageModel.VIDEO, False)
        raise

    record_usage(recorder, ImageModel.VIDEO, True)
    logger.info(f"Video job {handle} complete: {blob.size} bytes at {blob.path}")
    return blob
