"""Pydantic models for generation requests, outcomes and usage events.

These schemas define the parameter shapes callers pass into the image and
video generation clients and the outcome/usage records they get back.
"""

import base64
import re
from enum import Enum
from typing import NewType, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from studiogen.config import settings
from studiogen.errors import ReferenceLimitError


class AspectRatio(str, Enum):
    """Aspect ratios offered to the user."""

    RATIO_1_1 = "1:1"
    RATIO_4_5 = "4:5"
    RATIO_3_4 = "3:4"
    RATIO_16_9 = "16:9"
    RATIO_9_16 = "9:16"
    # Print/document alias; sent to the provider as 3:4
    A4_DOCUMENT = "A4-document"


class ImageResolution(str, Enum):
    """Output size tiers for the high-quality image model."""

    RES_1K = "1K"
    RES_2K = "2K"
    RES_4K = "4K"


class VideoResolution(str, Enum):
    """Output resolutions for video generation."""

    RES_720P = "720p"
    RES_1080P = "1080p"


class ImageModel(str, Enum):
    """Model classification used for routing and cost bookkeeping."""

    FAST = "fast-image"
    HIGH_QUALITY = "high-quality-image"
    VIDEO = "video"

    @property
    def is_video(self) -> bool:
        return self is ImageModel.VIDEO

    def provider_model_id(self) -> str:
        """Resolve the configured provider model ID for this classification."""
        if self is ImageModel.FAST:
            return settings.models.fast_image
        if self is ImageModel.HIGH_QUALITY:
            return settings.models.high_quality_image
        return settings.models.video


class ArtStyle(str, Enum):
    """Named style presets appended to the user's prompt."""

    NONE = "No specific style"
    PHOTOREALISTIC = "Photorealistic"
    CINEMATIC = "Cinematic"
    SURREAL = "Surreal"
    WATERCOLOR = "Watercolor"
    MOEBIUS = "Moebius"
    HYPER_REALISTIC = "Hyper-realistic"
    CYBERPUNK = "Cyberpunk"
    OIL_PAINTING = "Oil Painting"
    ANIME = "Anime"
    PIXEL_ART = "Pixel Art"
    MINIMALIST = "Minimalist"


STYLE_PROMPTS: dict[ArtStyle, str] = {
    ArtStyle.NONE: "",
    ArtStyle.PHOTOREALISTIC: "ultra-realistic professional photography, 8k UHD, cinematic lighting",
    ArtStyle.CINEMATIC: "cinematic movie still, dramatic lighting",
    ArtStyle.SURREAL: "surrealist masterpiece, dreamlike atmosphere",
    ArtStyle.WATERCOLOR: "soft watercolor painting",
    ArtStyle.MOEBIUS: "Jean Giraud Moebius style, clean lines",
    ArtStyle.HYPER_REALISTIC: "hyper-realistic digital art, extreme detail",
    ArtStyle.CYBERPUNK: "cyberpunk aesthetic, neon lights",
    ArtStyle.OIL_PAINTING: "classical oil painting on canvas",
    ArtStyle.ANIME: "high-quality modern anime style",
    ArtStyle.PIXEL_ART: "retro 16-bit pixel art",
    ArtStyle.MINIMALIST: "minimalist flat design",
}


def apply_style(prompt: str, style: ArtStyle) -> str:
    """Append the style preset phrase to a prompt."""
    phrase = STYLE_PROMPTS.get(style, "")
    if not phrase:
        return prompt
    return f"{prompt}. Style: {phrase}"


_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<payload>.+)$", re.DOTALL)


class ReferenceMedia(BaseModel):
    """A reference image supplied alongside the prompt."""

    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_data_uri(cls, uri: str) -> "ReferenceMedia":
        """Parse a ``data:<mime>;base64,<payload>`` string.

        Raises:
            ValueError: If the string is not a base64 data URI.
        """
        match = _DATA_URI_RE.match(uri.strip())
        if not match:
            raise ValueError("Reference media must be a base64 data URI")
        return cls(
            data=base64.b64decode(match.group("payload")),
            mime_type=match.group("mime"),
        )


def reference_cap(model: ImageModel) -> int:
    """Maximum number of reference images accepted for a model's mode."""
    if model.is_video:
        return settings.generation.video_reference_cap
    return settings.generation.image_reference_cap


class GenerationRequest(BaseModel):
    """High-level parameters for one generation call.

    Invariant: ``reference_media`` never holds more items than the mode's cap
    (2 for image composition, 3 for video).
    """

    prompt: str
    aspect_ratio: AspectRatio = AspectRatio.RATIO_1_1
    resolution: Optional[str] = None
    model: ImageModel = ImageModel.FAST
    reference_media: list[ReferenceMedia] = Field(default_factory=list)

    @field_validator("resolution", mode="before")
    @classmethod
    def unwrap_resolution_enum(cls, v):
        """Store resolution tiers as their plain wire value."""
        if isinstance(v, Enum):
            return v.value
        return v

    @model_validator(mode="after")
    def check_mode_constraints(self) -> "GenerationRequest":
        cap = reference_cap(self.model)
        if len(self.reference_media) > cap:
            raise ReferenceLimitError(
                f"{self.model.value} accepts at most {cap} reference image(s), "
                f"got {len(self.reference_media)}"
            )

        if self.resolution is not None:
            allowed = VideoResolution if self.model.is_video else ImageResolution
            valid = {r.value for r in allowed}
            if self.resolution not in valid:
                raise ValueError(
                    f"Resolution {self.resolution!r} not valid for "
                    f"{self.model.value}; expected one of {sorted(valid)}"
                )
        return self


class MediaResult(BaseModel):
    """Successful image outcome: a displayable data URI."""

    uri: str
    mime_type: str


class UsageEvent(BaseModel):
    """One record per top-level generation call; retries are not counted."""

    model: ImageModel
    success: bool


class ApiUsage(BaseModel):
    """Aggregate usage counters kept by the in-memory recorder."""

    total_requests: int = 0
    success_count: int = 0
    failure_count: int = 0
    flash_requests: int = 0
    pro_requests: int = 0
    estimated_cost: float = 0.0


# Provider operation name of an in-flight video job. Held by the video client
# only while polling; discarded once the job is terminal.
OperationHandle = NewType("OperationHandle", str)
