"""
PlantScan Backend - Inventory Service Unit Tests
==================================================

What:  Tests for InventoryService workflows (identify, scan, attach, detach).
How:   Mock record store and mock file service; the real ScanParser.

What we test:
    ✅ Scan hit returns the record, scan miss raises RecordNotFound
    ✅ Attach appends the stored URL and commits
    ✅ Attach removes the stored file when the record is missing or the write fails
    ✅ Concurrent ImageLinks edits are recomputed on the fresh value
    ✅ Detach only deletes files listed on the target record
    ✅ Detach leaves the record untouched when the file cannot be deleted
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from plantscan.exceptions import (
    FileOperationError,
    InvalidPayload,
    RecordNotFound,
    StorageError,
)
from plantscan.services.file_service import StoredFile
from plantscan.services.inventory_service import InventoryService
from plantscan.services.scan_parser import ParsedIdentifiers, ScanParser

STORED = StoredFile(path=Path("/srv/uploads/1718029384123-9f2c1a7b.jpg"), url="/uploads/1718029384123-9f2c1a7b.jpg")
IDS = ParsedIdentifiers(group_id="7", plant_id="99")


def make_store():
    store = MagicMock()
    store.find_one = AsyncMock()
    store.get_image_links = AsyncMock()
    store.update_image_links = AsyncMock(return_value=True)
    store.commit = AsyncMock()
    return store


def make_files():
    files = MagicMock()
    files.validate_and_store = AsyncMock(return_value=STORED)
    files.cleanup_file = AsyncMock()
    files.delete_by_url = AsyncMock()
    return files


class TestRequestDecoding:

    def setup_method(self):
        self.service = InventoryService(ScanParser(), make_store(), make_files())

    def test_identify_raw_scan(self):
        assert self.service.identify({"qrCodeData": "*A7*JUNK*V99*"}) == IDS

    def test_identify_structured_only(self):
        with pytest.raises(InvalidPayload, match="Group ID and Plant ID are required"):
            self.service.identify({"qrCodeData": "*A7*V99*"}, allow_raw=False)

    def test_identify_half_pair(self):
        with pytest.raises(InvalidPayload):
            self.service.identify({"groupId": "7"}, allow_raw=False)

    @pytest.mark.parametrize("payload", [
        {"groupId": "7", "plantId": "99"},
        {"groupId": "7", "plantId": "99", "imageUrl": "  "},
        {"groupId": "7", "plantId": "99", "imageUrl": 5},
    ])
    def test_require_image_url(self, payload):
        with pytest.raises(InvalidPayload, match="imageUrl is required"):
            self.service.require_image_url(payload)

    def test_require_image_url_returns_value(self):
        assert self.service.require_image_url({"imageUrl": "/uploads/x.png"}) == "/uploads/x.png"


class TestScan:

    def setup_method(self):
        self.store = make_store()
        self.service = InventoryService(ScanParser(), self.store, make_files())

    @pytest.mark.asyncio
    async def test_scan_hit(self, mock_db_session):
        record = {"GroupID": 7, "Plant": 99, "CommonName": "Japanese Maple"}
        self.store.find_one.return_value = record

        result = await self.service.scan(mock_db_session, IDS)

        assert result == record
        self.store.find_one.assert_awaited_once_with(mock_db_session, IDS)

    @pytest.mark.asyncio
    async def test_scan_miss(self, mock_db_session):
        self.store.find_one.return_value = None

        with pytest.raises(RecordNotFound) as exc_info:
            await self.service.scan(mock_db_session, IDS)
        assert exc_info.value.message == "Plant not found"
        assert exc_info.value.group_id == "7"


class TestAttachImage:

    def setup_method(self):
        self.store = make_store()
        self.files = make_files()
        self.service = InventoryService(ScanParser(), self.store, self.files)

    @pytest.mark.asyncio
    async def test_attach_to_empty_record(self, mock_db_session):
        self.store.get_image_links.return_value = None

        url = await self.service.attach_image(mock_db_session, IDS, "leaf.jpg", b"img")

        assert url == STORED.url
        self.store.update_image_links.assert_awaited_once_with(
            mock_db_session, IDS, STORED.url, expected=None
        )
        self.store.commit.assert_awaited_once()
        self.files.cleanup_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attach_appends(self, mock_db_session):
        self.store.get_image_links.return_value = "/uploads/a.png"

        await self.service.attach_image(mock_db_session, IDS, "leaf.jpg", b"img")

        self.store.update_image_links.assert_awaited_once_with(
            mock_db_session, IDS, f"/uploads/a.png,{STORED.url}", expected="/uploads/a.png"
        )

    @pytest.mark.asyncio
    async def test_attach_invalid_file_touches_nothing(self, mock_db_session):
        self.files.validate_and_store.side_effect = InvalidPayload("File type '.pdf' is not supported.")

        with pytest.raises(InvalidPayload):
            await self.service.attach_image(mock_db_session, IDS, "notes.pdf", b"%PDF")

        self.store.get_image_links.assert_not_awaited()
        self.files.cleanup_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attach_missing_record_removes_file(self, mock_db_session):
        self.store.get_image_links.side_effect = RecordNotFound("7", "99")

        with pytest.raises(RecordNotFound):
            await self.service.attach_image(mock_db_session, IDS, "leaf.jpg", b"img")

        self.files.cleanup_file.assert_awaited_once_with(STORED.path)
        self.store.update_image_links.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attach_storage_failure_removes_file(self, mock_db_session):
        self.store.get_image_links.return_value = None
        self.store.commit.side_effect = StorageError()

        with pytest.raises(StorageError):
            await self.service.attach_image(mock_db_session, IDS, "leaf.jpg", b"img")
        self.files.cleanup_file.assert_awaited_once_with(STORED.path)

    @pytest.mark.asyncio
    async def test_concurrent_append_is_recomputed(self, mock_db_session):
        # Another upload lands between our read and our write
        self.store.get_image_links.side_effect = ["/uploads/a.png", "/uploads/a.png,/uploads/other.png"]
        self.store.update_image_links.side_effect = [False, True]

        await self.service.attach_image(mock_db_session, IDS, "leaf.jpg", b"img")

        last_call = self.store.update_image_links.await_args_list[-1]
        assert last_call.args[2] == f"/uploads/a.png,/uploads/other.png,{STORED.url}"
        assert last_call.kwargs["expected"] == "/uploads/a.png,/uploads/other.png"
        self.store.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_contention_gives_up_after_attempts(self, mock_db_session):
        service = InventoryService(ScanParser(), self.store, self.files, link_update_attempts=2)
        self.store.get_image_links.return_value = "/uploads/a.png"
        self.store.update_image_links.return_value = False

        with pytest.raises(StorageError, match="another request"):
            await service.attach_image(mock_db_session, IDS, "leaf.jpg", b"img")

        assert self.store.update_image_links.await_count == 2
        self.store.commit.assert_not_awaited()
        self.files.cleanup_file.assert_awaited_once_with(STORED.path)


class TestDetachImage:

    def setup_method(self):
        self.store = make_store()
        self.files = make_files()
        self.service = InventoryService(ScanParser(), self.store, self.files)

    @pytest.mark.asyncio
    async def test_detach_removes_every_match(self, mock_db_session):
        self.store.get_image_links.return_value = "/uploads/x.png,/uploads/y.png,/uploads/x.png"

        assert await self.service.detach_image(mock_db_session, IDS, "/uploads/x.png") is True

        self.files.delete_by_url.assert_awaited_once_with("/uploads/x.png")
        self.store.update_image_links.assert_awaited_once_with(
            mock_db_session,
            IDS,
            "/uploads/y.png",
            expected="/uploads/x.png,/uploads/y.png,/uploads/x.png",
        )
        self.store.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_detach_file_failure_leaves_record(self, mock_db_session):
        self.store.get_image_links.return_value = "/uploads/x.png"
        self.files.delete_by_url.side_effect = FileOperationError()

        with pytest.raises(FileOperationError):
            await self.service.detach_image(mock_db_session, IDS, "/uploads/x.png")

        self.store.update_image_links.assert_not_awaited()
        self.store.commit.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("links", [None, "", "/uploads/other.png"])
    async def test_detach_unlisted_url_deletes_nothing(self, mock_db_session, links):
        self.store.get_image_links.return_value = links

        assert await self.service.detach_image(mock_db_session, IDS, "/uploads/x.png") is False

        self.files.delete_by_url.assert_not_awaited()
        self.store.update_image_links.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_detach_missing_record_deletes_nothing(self, mock_db_session):
        self.store.get_image_links.side_effect = RecordNotFound("7", "99")

        with pytest.raises(RecordNotFound):
            await self.service.detach_image(mock_db_session, IDS, "/uploads/x.png")
        self.files.delete_by_url.assert_not_awaited()
