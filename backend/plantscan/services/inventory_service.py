"""
PlantScan Backend - Inventory Service (Business Logic Orchestrator)
=====================================================================

What:  Scan lookup, photo attach and photo detach workflows.
How:   Composes ScanParser, InventoryStore, FileService and the ImageLinks
       editor. Receives the request's session for every call.
Who:   Called by route handlers in plantscan.routes.

Orchestration:
    POST /scan           identify → find_one → record | RecordNotFound
    POST /upload         identify → validate+store file → append URL → commit
                         (file removed again if anything after the write fails)
    DELETE /delete-image identify + imageUrl → URL listed on record?
                         → delete file → remove URL → commit
                         (unlisted URL is a no-op; record untouched if the
                         file could not be deleted)

Concurrent edits to one record:
    ImageLinks is updated with a compare-and-swap. When another request
    changed the value between our read and our write, the value is re-read
    and the edit recomputed, at most `link_update_attempts` times.
    Without contention this is one read and one write, as before.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from plantscan.exceptions import InvalidPayload, RecordNotFound, StorageError
from plantscan.services.file_service import FileService
from plantscan.services.image_links import LinkSet, append_link, remove_link
from plantscan.services.inventory_store import InventoryStore
from plantscan.services.scan_parser import ParsedIdentifiers, ScanParser

logger = logging.getLogger(__name__)

IMAGE_URL_FIELD = "imageUrl"


class InventoryService:
    """
    Business logic for PlantList scans and photo links.

    Args:
        parser:               Scan payload parser (field names from settings)
        store:                PlantList record store
        files:                Image blob store
        link_update_attempts: CAS rounds before an ImageLinks edit gives up
    """

    def __init__(
        self,
        parser: ScanParser,
        store: InventoryStore,
        files: FileService,
        link_update_attempts: int = 3,
    ):
        self.parser = parser
        self.store = store
        self.files = files
        self.link_update_attempts = link_update_attempts

    # ── Request decoding ──────────────────────────────────────────────────

    def identify(self, payload: Any, allow_raw: bool = True) -> ParsedIdentifiers:
        """
        Record key named by a scan, upload or delete payload.

        Raises:
            InvalidPayload: no usable QR string or identifier pair
        """
        return self.parser.parse(payload, allow_raw=allow_raw)

    @staticmethod
    def require_image_url(payload: Mapping[str, Any]) -> str:
        image_url = payload.get(IMAGE_URL_FIELD)
        if not isinstance(image_url, str) or not image_url.strip():
            raise InvalidPayload(message="imageUrl is required", field=IMAGE_URL_FIELD)
        return image_url

    # ── Workflows ─────────────────────────────────────────────────────────

    async def scan(self, db: AsyncSession, ids: ParsedIdentifiers) -> Dict[str, Any]:
        """
        Look up the record a QR scan points at.

        Raises:
            RecordNotFound: no record for the key
            StorageError:   lookup failed
        """
        record = await self.store.find_one(db, ids)
        if record is None:
            logger.info("Scan miss: GroupID=%s Plant=%s", ids.group_id, ids.plant_id)
            raise RecordNotFound(ids.group_id, ids.plant_id)

        logger.info("Scan hit: GroupID=%s Plant=%s", ids.group_id, ids.plant_id)
        return record

    async def attach_image(
        self,
        db: AsyncSession,
        ids: ParsedIdentifiers,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Store an uploaded photo and append its URL to the record's ImageLinks.

        Returns:
            The public URL of the stored photo.

        Raises:
            InvalidPayload: bad file type or size
            RecordNotFound: no record for the key (stored file is removed)
            StorageError:   disk or database failure (stored file is removed)
        """
        stored = await self.files.validate_and_store(
            filename=filename,
            content=content,
            content_length=content_length,
        )

        try:
            await self._edit_links(
                db,
                ids,
                lambda current: append_link(current, stored.url),
                action="append",
            )
        except Exception:
            await self.files.cleanup_file(stored.path)
            raise

        logger.info(
            "Image attached: GroupID=%s Plant=%s url=%s",
            ids.group_id,
            ids.plant_id,
            stored.url,
        )
        return stored.url

    async def detach_image(self, db: AsyncSession, ids: ParsedIdentifiers, image_url: str) -> bool:
        """
        Delete a photo file and drop its URL from the record's ImageLinks.

        Only URLs listed on the target record are touched. An unlisted URL
        is a no-op: the file may belong to another record. For a listed URL
        the file goes first; if it cannot be removed the record is not
        touched.

        Returns:
            True if the photo was listed and removed, False for a no-op.

        Raises:
            FileOperationError: file could not be deleted
            RecordNotFound:     no record for the key
            StorageError:       database failure
        """
        current = await self.store.get_image_links(db, ids)
        if image_url not in LinkSet.parse(current):
            logger.info(
                "Image not listed on GroupID=%s Plant=%s, nothing deleted: url=%s",
                ids.group_id,
                ids.plant_id,
                image_url,
            )
            return False

        await self.files.delete_by_url(image_url)

        # Record found with a NULL column is an empty list, not a missing record
        await self._edit_links(
            db,
            ids,
            lambda links: remove_link(links or "", image_url),
            action="remove",
        )
        logger.info(
            "Image detached: GroupID=%s Plant=%s url=%s",
            ids.group_id,
            ids.plant_id,
            image_url,
        )
        return True

    async def _edit_links(
        self,
        db: AsyncSession,
        ids: ParsedIdentifiers,
        edit: Callable[[Optional[str]], str],
        action: str,
    ) -> str:
        """Read ImageLinks, apply `edit`, compare-and-swap, commit."""
        for attempt in range(1, self.link_update_attempts + 1):
            current = await self.store.get_image_links(db, ids)
            updated = edit(current)

            if updated == (current or ""):
                return updated

            if await self.store.update_image_links(db, ids, updated, expected=current):
                await self.store.commit(db, ids)
                return updated

            logger.warning(
                "ImageLinks for GroupID=%s Plant=%s changed during %s (attempt %d/%d)",
                ids.group_id,
                ids.plant_id,
                action,
                attempt,
                self.link_update_attempts,
            )

        raise StorageError(
            message="The record is being updated by another request. Please try again.",
            context={
                "action": action,
                "group_id": ids.group_id,
                "plant_id": ids.plant_id,
                "attempts": self.link_update_attempts,
            },
        )
