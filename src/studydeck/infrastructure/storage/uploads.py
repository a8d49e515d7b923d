"""Filesystem storage for uploaded study pages."""

import logging
import time
from pathlib import Path

from studydeck.domain.constants import CONTENT_TYPES, DEFAULT_UPLOAD_EXT, PUBLIC_UPLOADS_PREFIX
from studydeck.domain.errors import NotFoundError

logger = logging.getLogger(__name__)


def guess_content_type(filename: str | Path) -> str:
    """Content type for serving a stored file."""
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


def guess_mime_type(filename: str | Path) -> str:
    """Mime type sent to the generator; unknown extensions are treated as PNG."""
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), "image/png")


class UploadStore:
    def __init__(self, uploads_dir: Path):
        self.uploads_dir = Path(uploads_dir)

    def save(self, data: bytes, original_name: str, course_id: str, page_number: int) -> Path:
        """
        Write an uploaded file as `{course_id}_page_{n}_{epoch_ms}{ext}`.
        """
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

        ext = Path(original_name or "").suffix or DEFAULT_UPLOAD_EXT
        filename = f"{course_id}_page_{page_number}_{int(time.time() * 1000)}{ext}"
        path = self.uploads_dir / filename
        path.write_bytes(data)

        logger.info(f"Saved upload {original_name!r} as {path}")
        return path

    @staticmethod
    def public_path(path: str | Path) -> str:
        return f"{PUBLIC_UPLOADS_PREFIX}/{Path(path).name}"

    def resolve(self, filename: str) -> Path:
        """
        Map a requested filename to a stored file.

        Only the final path component is used, so `../` tricks stay inside
        the uploads directory.

        Raises:
            NotFoundError: No such file.
        """
        safe_name = Path(filename).name
        path = self.uploads_dir / safe_name
        if not safe_name or not path.is_file():
            raise NotFoundError(f"File {filename} not found")
        return path
