"""Shared fixtures: configured credential, recorded sleeps, stub provider clients."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from google.genai import types

from studiogen.config import settings
from studiogen.services.blob_store import BlobStore
from studiogen.services.usage import InMemoryUsageRecorder

TEST_API_KEY = "test-key-1234"
VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(float(delay))


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    """Configure a credential and isolate tests from the caller's environment."""
    monkeypatch.setattr(settings.google, "api_key", TEST_API_KEY)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    return TEST_API_KEY


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setattr(settings.google, "api_key", None)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def recorder():
    return InMemoryUsageRecorder()


@pytest.fixture
def blob_store(tmp_path):
    return BlobStore(tmp_path / "blobs")


@pytest.fixture
def genai_client():
    """MagicMock shaped like google.genai.Client with async model calls."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    client.aio.models.generate_videos = AsyncMock()
    client.aio.operations.get = AsyncMock()
    return client


@pytest.fixture
def download_requests():
    return []


@pytest.fixture
def http_client(download_requests):
    """httpx client whose transport serves a fixed MP4 payload."""

    def handler(request: httpx.Request) -> httpx.Response:
        download_requests.append(request)
        return httpx.Response(200, content=b"MP4DATA", headers={"content-type": "video/mp4"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def image_response(
    data: bytes = b"PNGDATA",
    mime_type: str | None = "image/png",
    finish_reason=types.FinishReason.STOP,
) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                finish_reason=finish_reason,
                content=types.Content(
                    role="model",
                    parts=[types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))],
                ),
            )
        ]
    )


def pending_operation(name: str = "operations/video-1") -> types.GenerateVideosOperation:
    return types.GenerateVideosOperation(name=name, done=False)


def finished_operation(
    name: str = "operations/video-1", uri: str | None = VIDEO_URI
) -> types.GenerateVideosOperation:
    videos = [types.GeneratedVideo(video=types.Video(uri=uri))] if uri else []
    return types.GenerateVideosOperation(
        name=name,
        done=True,
        response=types.GenerateVideosResponse(generated_videos=videos),
    )


def failed_operation(
    name: str = "operations/video-1", message: str = "Prompt could not be processed"
) -> types.GenerateVideosOperation:
    return types.GenerateVideosOperation(
        name=name,
        done=True,
        error={"code": 3, "message": message},
    )
