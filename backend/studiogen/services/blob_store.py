"""
Local blob storage for downloaded media.

Each saved payload becomes a MediaBlob: a revocable handle backed by a file
under the blob directory, addressable by a file:// URI for playback.
The caller owns the handle and must release() it once the media is no longer
displayed; the generation core never releases handles it has returned.
"""
import logging
import mimetypes
import uuid
from pathlib import Path

from studiogen.config import settings

logger = logging.getLogger(__name__)


class MediaBlob:
    """
    Revocable handle to a locally stored media payload.

    Usable as a context manager; leaving the block releases the handle.
    """

    def __init__(self, path: Path, mime_type: str, size: int):
        self.path = path
        self.mime_type = mime_type
        self.size = size
        self._released = False

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    @property
    def released(self) -> bool:
        return self._released

    def read_bytes(self) -> bytes:
        if self._released:
            raise ValueError("Media blob has been released")
        return self.path.read_bytes()

    def release(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        if self._released:
            return
        self.path.unlink(missing_ok=True)
        self._released = True

    def __enter__(self) -> "MediaBlob":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"MediaBlob({self.uri!r}, {self.mime_type!r}, {self.size} bytes, {state})"


class BlobStore:
    """
    Store media payloads as files and hand out MediaBlob handles.

    Implements path traversal protection to prevent directory escape attacks.
    """

    def __init__(self, base_dir: str | Path | None = None):
        """
        Initialize BlobStore with base directory.

        Args:
            base_dir: Root directory for stored blobs.
                     If None, uses settings.storage.blob_dir
        """
        if base_dir is None:
            base_dir = settings.storage.blob_dir

        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, mime_type: str = "video/mp4") -> MediaBlob:
        """
        Save a payload and return a handle to it.

        Args:
            data: Raw media bytes
            mime_type: MIME type of the payload

        Returns:
            MediaBlob owning the stored file

        Raises:
            ValueError: If the generated path falls outside base_dir
        """
        extension = mimetypes.guess_extension(mime_type) or ".bin"
        filepath = (self.base_dir / f"{uuid.uuid4().hex}{extension}").resolve()

        if not filepath.is_relative_to(self.base_dir):
            raise ValueError("Invalid blob path")

        filepath.write_bytes(data)
        logger.debug(f"Stored {len(data)} bytes at {filepath}")

        return MediaBlob(filepath, mime_type, len(data))
