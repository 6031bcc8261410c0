"""Unit tests for provider request construction."""

import pytest

from studiogen.config import settings
from studiogen.errors import ReferenceLimitError
from studiogen.schemas.generation import (
    AspectRatio,
    GenerationRequest,
    ImageModel,
    ReferenceMedia,
)
from studiogen.services.request_builder import (
    build_image_request,
    build_video_request,
    normalize_aspect_ratio,
)


def _ref(tag: bytes) -> ReferenceMedia:
    return ReferenceMedia(data=tag, mime_type="image/jpeg")


def test_a4_document_normalized_to_three_by_four():
    assert normalize_aspect_ratio("A4-document") == "3:4"
    assert normalize_aspect_ratio(AspectRatio.A4_DOCUMENT) == "3:4"


@pytest.mark.parametrize("ratio", ["1:1", "4:5", "3:4", "16:9", "9:16"])
def test_other_ratios_pass_through(ratio):
    assert normalize_aspect_ratio(ratio) == ratio


def test_image_request_prompt_only():
    request = GenerationRequest(prompt="a red fox", aspect_ratio="1:1", model=ImageModel.FAST)

    built = build_image_request(request)

    assert built.model == settings.models.fast_image
    assert len(built.contents) == 1
    assert built.contents[0].text == "a red fox"
    assert built.config.image_config.aspect_ratio == "1:1"


def test_image_request_reference_parts_precede_prompt():
    request = GenerationRequest(
        prompt="merge these",
        model=ImageModel.FAST,
        reference_media=[_ref(b"first"), _ref(b"second")],
    )

    built = build_image_request(request)

    assert [p.inline_data.data for p in built.contents[:2]] == [b"first", b"second"]
    assert built.contents[0].inline_data.mime_type == "image/jpeg"
    assert built.contents[2].text == "merge these"


def test_fast_model_ignores_resolution():
    request = GenerationRequest(prompt="p", resolution="4K", model=ImageModel.FAST)

    built = build_image_request(request)

    assert built.config.image_config.image_size is None


def test_high_quality_model_sends_resolution():
    request = GenerationRequest(prompt="p", resolution="2K", model=ImageModel.HIGH_QUALITY)

    built = build_image_request(request)

    assert built.model == settings.models.high_quality_image
    assert built.config.image_config.image_size == "2K"


def test_image_request_wire_ratio_for_a4():
    request = GenerationRequest(prompt="poster", aspect_ratio="A4-document")

    assert build_image_request(request).config.image_config.aspect_ratio == "3:4"


def test_image_builder_rejects_video_mode_references():
    request = GenerationRequest(
        prompt="p", model=ImageModel.VIDEO, reference_media=[_ref(b"a"), _ref(b"b"), _ref(b"c")]
    )

    with pytest.raises(ValueError):
        build_image_request(request)


def test_video_request_sends_only_first_reference_as_seed():
    request = GenerationRequest(
        prompt="a sunset",
        aspect_ratio="16:9",
        resolution="720p",
        model=ImageModel.VIDEO,
        reference_media=[_ref(b"seed"), _ref(b"two"), _ref(b"three")],
    )

    built = build_video_request(request)

    assert built.model == settings.models.video
    assert built.prompt == "a sunset"
    assert built.image.image_bytes == b"seed"
    assert built.config.number_of_videos == 1
    assert built.config.aspect_ratio == "16:9"
    assert built.config.resolution == "720p"


def test_video_request_without_reference_has_no_image():
    request = GenerationRequest(prompt="a sunset", model=ImageModel.VIDEO)

    built = build_video_request(request)

    assert built.image is None
    assert built.config.resolution is None


def test_reference_cap_enforced_per_mode():
    with pytest.raises(ReferenceLimitError):
        GenerationRequest(prompt="p", model=ImageModel.FAST, reference_media=[_ref(b"1")] * 3)
    with pytest.raises(ReferenceLimitError):
        GenerationRequest(prompt="p", model=ImageModel.VIDEO, reference_media=[_ref(b"1")] * 4)

    GenerationRequest(prompt="p", model=ImageModel.VIDEO, reference_media=[_ref(b"1")] * 3)
