"""Provider request construction for image and video generation.

Turns a GenerationRequest into the arguments expected by the google-genai
``generate_content`` and ``generate_videos`` calls:
- Reference images become inline binary parts ahead of the prompt text
- The A4-document ratio alias is normalized to the 3:4 wire value
- Resolution is only sent to the high-quality image model
- Video jobs take at most one seed image and always request one output
"""

import logging
from dataclasses import dataclass
from typing import Optional

from google.genai import types

from studiogen.errors import ReferenceLimitError
from studiogen.schemas.generation import (
    AspectRatio,
    GenerationRequest,
    ImageModel,
    reference_cap,
)

logger = logging.getLogger(__name__)

_ASPECT_RATIO_ALIASES = {
    AspectRatio.A4_DOCUMENT: "3:4",
}


@dataclass
class ImageRequest:
    """Arguments for ``client.aio.models.generate_content``."""

    model: str
    contents: list[types.Part]
    config: types.GenerateContentConfig


@dataclass
class VideoRequest:
    """Arguments for ``client.aio.models.generate_videos``."""

    model: str
    prompt: str
    config: types.GenerateVideosConfig
    image: Optional[types.Image] = None


def normalize_aspect_ratio(aspect_ratio: AspectRatio | str) -> str:
    """Return the wire value for an aspect ratio.

    Only the document/print alias is translated; every other ratio passes
    through verbatim.
    """
    ratio = AspectRatio(aspect_ratio)
    return _ASPECT_RATIO_ALIASES.get(ratio, ratio.value)


def _check_cap(request: GenerationRequest, model: ImageModel) -> None:
    cap = reference_cap(model)
    if len(request.reference_media) > cap:
        raise ReferenceLimitError(
            f"{model.value} accepts at most {cap} reference image(s), "
            f"got {len(request.reference_media)}"
        )


def build_image_request(request: GenerationRequest) -> ImageRequest:
    """Build a multi-part generate_content request.

    Contents order: [reference_1, reference_2, ..., text_prompt]

    Raises:
        ReferenceLimitError: If the request carries more references than
            image composition accepts.
        ValueError: If the request targets the video model.
    """
    if request.model.is_video:
        raise ValueError("Video requests must be built with build_video_request")
    _check_cap(request, request.model)

    contents: list[types.Part] = [
        types.Part.from_bytes(data=ref.data, mime_type=ref.mime_type)
        for ref in request.reference_media
    ]
    contents.append(types.Part.from_text(text=request.prompt))

    image_config = types.ImageConfig(
        aspect_ratio=normalize_aspect_ratio(request.aspect_ratio),
    )
    # Fast model renders at a fixed size
    if request.model is ImageModel.HIGH_QUALITY and request.resolution:
        image_config.image_size = request.resolution

    return ImageRequest(
        model=request.model.provider_model_id(),
        contents=contents,
        config=types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=image_config,
        ),
    )


def build_video_request(request: GenerationRequest) -> VideoRequest:
    """Build a generate_videos request.

    The wire protocol accepts a single seed image, so only the first of the
    (up to three) references is sent; the rest are dropped with a log line.

    Raises:
        ReferenceLimitError: If more than the video cap of references is given.
    """
    _check_cap(request, ImageModel.VIDEO)

    config = types.GenerateVideosConfig(
        aspect_ratio=normalize_aspect_ratio(request.aspect_ratio),
        number_of_videos=1,
    )
    if request.resolution:
        config.resolution = request.resolution

    image = None
    if request.reference_media:
        seed = request.reference_media[0]
        image = types.Image(image_bytes=seed.data, mime_type=seed.mime_type)
        if len(request.reference_media) > 1:
            logger.info(
                f"Dropping {len(request.reference_media) - 1} reference image(s); "
                "video jobs accept a single seed image"
            )

    return VideoRequest(
        model=ImageModel.VIDEO.provider_model_id(),
        prompt=request.prompt,
        config=config,
        image=image,
    )
