"""
PlantScan Backend - Inventory Record Store
============================================

What:  All SQL against the PlantList table: exact-match lookup on
       (GroupID, Plant), ImageLinks read, conditional ImageLinks write.
How:   Async SQLAlchemy on the request's session. Driver and connection
       failures are wrapped in StorageError with the attempted key in the
       context; RecordNotFound is raised for a missing row.

Key handling:
    GroupID and Plant are INTEGER columns. Identifiers arrive as text; an
    identifier that is not made of ASCII digits, or whose value is outside
    the 32-bit INTEGER range, cannot match any row and is answered as "not
    found" without a round trip. Binding such a value would fail in the
    driver instead (asyncpg int4, sqlite3 OverflowError).

Write model:
    update_image_links() is a compare-and-swap: the UPDATE only applies
    while ImageLinks still holds the value the caller read. Callers re-read
    and recompute when it returns False (see InventoryService).
"""

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import literal_column, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from plantscan.exceptions import RecordNotFound, StorageError
from plantscan.models.plant import PlantRecord
from plantscan.services.scan_parser import ParsedIdentifiers

logger = logging.getLogger(__name__)

# Largest value a portable INTEGER key column holds (PostgreSQL int4)
MAX_KEY_VALUE = 2_147_483_647


def _key_part(value: str) -> Optional[int]:
    if not (value.isascii() and value.isdigit()):
        return None
    number = int(value)
    if number > MAX_KEY_VALUE:
        return None
    return number


def _key(ids: ParsedIdentifiers) -> Optional[Tuple[int, int]]:
    group_id = _key_part(ids.group_id)
    plant_id = _key_part(ids.plant_id)
    if group_id is None or plant_id is None:
        return None
    return group_id, plant_id


def _storage_error(action: str, ids: ParsedIdentifiers, exc: Exception) -> StorageError:
    logger.error(
        "PlantList %s failed for GroupID=%s Plant=%s: %s",
        action,
        ids.group_id,
        ids.plant_id,
        str(exc),
    )
    return StorageError(
        context={
            "action": action,
            "group_id": ids.group_id,
            "plant_id": ids.plant_id,
            "error_type": type(exc).__name__,
        },
    )


class InventoryStore:
    """Record store for PlantList. Stateless; the session is passed per call."""

    async def find_one(self, db: AsyncSession, ids: ParsedIdentifiers) -> Optional[Dict[str, Any]]:
        """
        Fetch the full record as a column-name → value dict.

        Uses SELECT * so columns added to the seeded table outside the ORM
        model are still returned to the scanner client.
        """
        key = _key(ids)
        if key is None:
            logger.debug("Key %s/%s is not a valid INTEGER pair, cannot match PlantList", ids.group_id, ids.plant_id)
            return None

        group_id, plant_id = key
        # Core table, not the mapped class: SELECT * rows are keyed by the
        # cursor's own column names
        plant_list = PlantRecord.__table__
        stmt = (
            select(literal_column("*"))
            .select_from(plant_list)
            .where(plant_list.c.GroupID == group_id, plant_list.c.Plant == plant_id)
        )
        try:
            result = await db.execute(stmt)
            row = result.mappings().first()
        except (SQLAlchemyError, OSError) as e:
            raise _storage_error("lookup", ids, e)

        return dict(row) if row is not None else None

    async def get_image_links(self, db: AsyncSession, ids: ParsedIdentifiers) -> Optional[str]:
        """
        Current ImageLinks value (None when the column is NULL).

        Raises:
            RecordNotFound: no row for the key
            StorageError:   query failed
        """
        key = _key(ids)
        if key is None:
            raise RecordNotFound(ids.group_id, ids.plant_id)

        group_id, plant_id = key
        stmt = select(PlantRecord.image_links).where(
            PlantRecord.group_id == group_id,
            PlantRecord.plant_id == plant_id,
        )
        try:
            result = await db.execute(stmt)
            row = result.first()
        except (SQLAlchemyError, OSError) as e:
            raise _storage_error("read ImageLinks", ids, e)

        if row is None:
            raise RecordNotFound(ids.group_id, ids.plant_id)
        return row[0]

    async def update_image_links(
        self,
        db: AsyncSession,
        ids: ParsedIdentifiers,
        new_value: str,
        expected: Optional[str],
    ) -> bool:
        """
        Write `new_value` only if ImageLinks still equals `expected`.

        Returns:
            True if the row was updated, False if the value changed (or the
            row disappeared) since it was read.
        """
        key = _key(ids)
        if key is None:
            return False

        group_id, plant_id = key
        stmt = (
            update(PlantRecord)
            .where(
                PlantRecord.group_id == group_id,
                PlantRecord.plant_id == plant_id,
                PlantRecord.image_links.is_not_distinct_from(expected),
            )
            .values(image_links=new_value)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await db.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            raise _storage_error("update ImageLinks", ids, e)

        return result.rowcount > 0

    async def commit(self, db: AsyncSession, ids: ParsedIdentifiers) -> None:
        try:
            await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise _storage_error("commit", ids, e)


inventory_store = InventoryStore()
