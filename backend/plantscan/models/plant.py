"""
PlantScan Backend - PlantList SQLAlchemy Model
================================================

What:  ORM model for the `PlantList` inventory table.
How:   Column names keep the spelling of the existing nursery database
       (GroupID, Plant, ImageLinks, ...); Python attributes are snake_case.
Who:   InventoryStore for lookups and ImageLinks writes; Alembic for schema.

Table notes:
    - (GroupID, Plant) is the composite key printed on every QR tag.
    - ImageLinks is a denormalized list: zero or more photo URLs joined by
      "," with no escaping. Parsing/serializing lives in
      plantscan.services.image_links; nothing else splits this column.
    - The descriptive columns are a passthrough for the scan response.
      Records are seeded outside this service, and a seeded table may carry
      more columns than declared here; POST /scan returns all of them.
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from plantscan.database import Base


class PlantRecord(Base):
    """
    One inventory record (a plant group/variety pair on a nursery tag).

    Lifecycle:
        1. Seeded externally (import script, spreadsheet export)
        2. Read by POST /scan
        3. ImageLinks appended by POST /upload, filtered by DELETE /delete-image
        4. Never deleted by this service
    """

    __tablename__ = "PlantList"

    group_id: Mapped[int] = mapped_column("GroupID", Integer, primary_key=True, autoincrement=False)
    plant_id: Mapped[int] = mapped_column("Plant", Integer, primary_key=True, autoincrement=False)

    common_name: Mapped[Optional[str]] = mapped_column("CommonName", String(255), nullable=True)
    botanical_name: Mapped[Optional[str]] = mapped_column("BotanicalName", String(255), nullable=True)
    size: Mapped[Optional[str]] = mapped_column("Size", String(64), nullable=True)
    quantity: Mapped[Optional[int]] = mapped_column("Quantity", Integer, nullable=True)
    location: Mapped[Optional[str]] = mapped_column("Location", String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column("Notes", Text, nullable=True)

    # Comma-joined photo URLs, insertion order, duplicates allowed
    image_links: Mapped[Optional[str]] = mapped_column("ImageLinks", Text, nullable=True)

    def __repr__(self) -> str:
        return f"<PlantRecord(GroupID={self.group_id}, Plant={self.plant_id})>"
