"""Photo storage for pint attachments."""
import logging
import uuid
from pathlib import Path
from typing import Optional, Union

from fastapi import UploadFile

from piinty.core.config import settings
from piinty.utils.group_validation import PhotoRejectedError

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/heic": ".heic",
}


class PhotoStorage:
    """
    Stores uploaded images on disk and hands back a URL for photo_ref.

    The image itself is never decoded; only the declared content type and
    the size are checked.
    """

    def __init__(
        self,
        directory: Union[str, Path, None] = None,
        url_prefix: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        self.directory = Path(directory or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.PHOTO_URL_PREFIX).rstrip("/")
        self.max_size = max_size or settings.MAX_FILE_SIZE

    def save(self, filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
        if not content_type or not content_type.startswith("image/"):
            raise PhotoRejectedError("Only images can be attached to a pint")
        if not data:
            raise PhotoRejectedError("Empty photo")
        if len(data) > self.max_size:
            raise PhotoRejectedError(f"Photo is larger than {self.max_size} bytes")

        suffix = EXTENSIONS.get(content_type) or Path(filename or "").suffix.lower() or ".img"
        name = f"{uuid.uuid4().hex}{suffix}"

        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_bytes(data)
        logger.info(f"Stored photo {name} ({len(data)} bytes)")
        return f"{self.url_prefix}/{name}"

    async def save_upload(self, upload: UploadFile) -> str:
        """Read an UploadFile in chunks, giving up once it passes max_size."""
        if not upload.content_type or not upload.content_type.startswith("image/"):
            raise PhotoRejectedError("Only images can be attached to a pint")

        chunks = []
        size = 0
        while True:
            chunk = await upload.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > self.max_size:
                raise PhotoRejectedError(f"Photo is larger than {self.max_size} bytes")
            chunks.append(chunk)
        return self.save(upload.filename, upload.content_type, b"".join(chunks))
