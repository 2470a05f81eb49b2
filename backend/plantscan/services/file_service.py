"""
PlantScan Backend - Image File Storage
========================================

What:  Stores uploaded plant photos on local disk, publishes them under
       /uploads/<name>, and deletes them by URL.
How:   Extension and size checks before anything touches the disk, unique
       generated filenames, async file I/O through aiofiles.
Who:   InventoryService (upload / delete-image), the /uploads static route.

Naming:
    <epoch milliseconds>-<8 hex chars><ext>, e.g. 1718029384123-9f2c1a7b.jpg
    The name never contains client input, so the public URL never contains
    a "," (ImageLinks delimiter) or a path separator.

Security Model:
    1. Extension allow-list:  only image types the scanner app can display
    2. Size check:            empty and oversized uploads are rejected
    3. Generated filenames:   no user input reaches the filesystem path
    4. Basename resolution:   delete/serve only ever look inside upload_dir
"""

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

import aiofiles
import aiofiles.os

from plantscan.exceptions import FileOperationError, InvalidPayload, StorageError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".heic", ".heif"}


@dataclass(frozen=True)
class StoredFile:
    path: Path
    url: str


class FileService:
    """
    Blob store backed by a local directory.

    Args:
        upload_dir:    Directory that holds the photos.
        url_prefix:    Public URL prefix the files are served under.
        max_file_size: Upper bound in bytes for a single upload.
    """

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads", max_file_size: int = 10_485_760):
        self.upload_dir = Path(upload_dir).resolve()
        self.url_prefix = "/" + url_prefix.strip("/")
        self.max_file_size = max_file_size
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_dir=%s", self.upload_dir)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized (lowercase, dotted) extension.

        Raises:
            InvalidPayload if the extension is not an allowed image type.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise InvalidPayload(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the reported size (if any) and the actual byte count.

        Raises:
            InvalidPayload for empty or oversized files.
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise InvalidPayload(message="Uploaded file is empty", field="file")

        if content_length and content_length > self.max_file_size:
            raise InvalidPayload(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise InvalidPayload(
                message=f"File is too large ({actual_size / (1024 * 1024):.1f}MB). Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    # ── Naming ────────────────────────────────────────────────────────────

    def _generate_name(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, public_url) for a fresh unique filename."""
        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{extension}"
        return self.upload_dir / name, f"{self.url_prefix}/{name}"

    def path_for_url(self, image_url: str) -> Path:
        """
        Map a public image URL back to its file inside upload_dir.

        Only the last path segment is used, so "../" sequences and foreign
        prefixes cannot point outside the upload directory.
        """
        name = PurePosixPath(image_url.strip()).name
        if not name or name in {".", ".."}:
            raise InvalidPayload(message="Invalid image URL", field="imageUrl")
        return self.upload_dir / name

    def resolve_public_file(self, file_name: str) -> Optional[Path]:
        """Absolute path of a stored file for static serving, or None."""
        candidate = (self.upload_dir / file_name).resolve()
        if candidate.parent != self.upload_dir or not candidate.is_file():
            return None
        return candidate

    # ── Write / delete ────────────────────────────────────────────────────

    async def store_file(self, content: bytes, extension: str) -> StoredFile:
        """
        Write validated content to disk.

        Raises:
            StorageError if the directory or file cannot be written.
        """
        absolute_path, url = self._generate_name(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise StorageError(
                context={"path": str(absolute_path), "os_error": type(e).__name__},
            )

        logger.info("File stored: %s (%d bytes)", absolute_path.name, len(content))
        return StoredFile(path=absolute_path, url=url)

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StoredFile:
        """Extension check, size check, then write."""
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        return await self.store_file(content, ext)

    async def delete_by_url(self, image_url: str) -> None:
        """
        Remove the file behind a public image URL.

        Raises:
            InvalidPayload:     URL has no usable file name
            FileOperationError: file missing or not removable
        """
        path = self.path_for_url(image_url)
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.error("Error deleting image file %s: %s", path.name, str(e))
            raise FileOperationError(
                context={"image_url": image_url, "os_error": type(e).__name__},
            )
        logger.info("Deleted image file: %s", path.name)

    async def cleanup_file(self, file_path: Path) -> None:
        """
        Best-effort removal of a file written for a request that then failed.

        A failure here is logged and not raised; the original error is what
        the client needs to see.
        """
        try:
            if file_path.exists():
                await aiofiles.os.remove(file_path)
                logger.info("Cleaned up file: %s", file_path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))
