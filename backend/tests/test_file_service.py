"""
PlantScan Backend - File Service Unit Tests
=============================================

What:  Tests for FileService validation, storage, deletion and serving lookups.
How:   Real files in a per-test temporary directory.

Test Strategy:
    ✅ Test allowed extensions (.jpg, .jpeg, .png, .webp, ...)
    ✅ Test rejected extensions (.pdf, .exe, none)
    ✅ Test size limits (empty, reported and actual oversize)
    ✅ Test generated names (unique, no client input, no ",")
    ✅ Test URL → path mapping stays inside the upload directory
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from plantscan.exceptions import FileOperationError, InvalidPayload, StorageError
from plantscan.services.file_service import FileService


class TestFileValidation:
    """Tests for file validation logic in FileService."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(upload_dir=temp_storage, max_file_size=2048)

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["leaf.jpg", "leaf.jpeg", "leaf.png", "leaf.webp", "leaf.HEIC"])
    def test_validate_extension_allowed(self, filename):
        assert self.service.validate_extension(filename) == Path(filename).suffix.lower()

    def test_validate_extension_uppercase(self):
        assert self.service.validate_extension("photo.JPG") == ".jpg"

    @pytest.mark.parametrize("filename", ["document.pdf", "malware.exe", "noextension"])
    def test_validate_extension_rejected(self, filename):
        with pytest.raises(InvalidPayload, match="not supported"):
            self.service.validate_extension(filename)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_validate_size_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_validate_size_at_limit(self):
        self.service.validate_size(2048, 2048)

    def test_validate_size_empty_rejected(self):
        with pytest.raises(InvalidPayload, match="empty"):
            self.service.validate_size(0, 0)

    def test_validate_size_reported_too_large(self):
        with pytest.raises(InvalidPayload, match="too large"):
            self.service.validate_size(4096, 100)

    def test_validate_size_actual_too_large(self):
        with pytest.raises(InvalidPayload, match="too large"):
            self.service.validate_size(None, 2049)


class TestFileStorage:
    """Tests for writing, deleting and locating files."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.upload_dir = Path(temp_storage).resolve()
        self.service = FileService(upload_dir=temp_storage)

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_file(self, sample_image_bytes):
        stored = await self.service.validate_and_store("My Leaf, Photo.JPG", sample_image_bytes)

        assert stored.path.parent == self.upload_dir
        assert stored.path.read_bytes() == sample_image_bytes
        assert stored.url == f"/uploads/{stored.path.name}"
        assert stored.path.suffix == ".jpg"
        # Client filename never reaches the stored name
        assert "Leaf" not in stored.url
        assert "," not in stored.url

    @pytest.mark.asyncio
    async def test_generated_names_are_unique(self, sample_image_bytes):
        first = await self.service.validate_and_store("a.png", sample_image_bytes)
        second = await self.service.validate_and_store("a.png", sample_image_bytes)
        assert first.url != second.url

    @pytest.mark.asyncio
    async def test_invalid_file_writes_nothing(self):
        with pytest.raises(InvalidPayload):
            await self.service.validate_and_store("notes.txt", b"hello")
        assert list(self.upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_store_failure_is_storage_error(self, sample_image_bytes):
        with patch("plantscan.services.file_service.aiofiles.open", side_effect=PermissionError("denied")):
            with pytest.raises(StorageError):
                await self.service.validate_and_store("a.png", sample_image_bytes)

    @pytest.mark.asyncio
    async def test_delete_by_url(self, sample_image_bytes):
        stored = await self.service.validate_and_store("a.png", sample_image_bytes)
        await self.service.delete_by_url(stored.url)
        assert not stored.path.exists()

    @pytest.mark.asyncio
    async def test_delete_missing_file(self):
        with pytest.raises(FileOperationError):
            await self.service.delete_by_url("/uploads/does-not-exist.png")

    @pytest.mark.asyncio
    async def test_delete_ignores_directory_components(self, tmp_path):
        outside = tmp_path / "outside.png"
        outside.write_bytes(b"keep")

        with pytest.raises(FileOperationError):
            await self.service.delete_by_url("/uploads/../outside.png")
        assert outside.exists()

    def test_path_for_url_uses_basename(self):
        assert self.service.path_for_url("/uploads/../../etc/passwd") == self.upload_dir / "passwd"
        assert self.service.path_for_url("http://host/uploads/x.png") == self.upload_dir / "x.png"

    def test_path_for_url_rejects_empty_name(self):
        with pytest.raises(InvalidPayload):
            self.service.path_for_url("/")

    def test_resolve_public_file(self):
        (self.upload_dir / "x.png").write_bytes(b"img")
        assert self.service.resolve_public_file("x.png") == self.upload_dir / "x.png"
        assert self.service.resolve_public_file("missing.png") is None
        assert self.service.resolve_public_file("../x.png") is None

    @pytest.mark.asyncio
    async def test_cleanup_missing_file_does_not_raise(self):
        await self.service.cleanup_file(self.upload_dir / "never-written.png")

    @pytest.mark.asyncio
    async def test_cleanup_removes_file(self, sample_image_bytes):
        stored = await self.service.validate_and_store("a.png", sample_image_bytes)
        await self.service.cleanup_file(stored.path)
        assert not stored.path.exists()
