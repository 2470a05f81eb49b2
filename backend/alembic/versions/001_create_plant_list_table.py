"""Create PlantList table

Revision ID: 001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  Creates the `PlantList` inventory table keyed by (GroupID, Plant).
How:   Portable column types only, so the same revision runs on SQLite
       (local PlantList.db) and PostgreSQL.

Rollback: downgrade() drops the table (all inventory rows are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "PlantList",

        # Composite key printed on the QR tag: *A<GroupID>*...*V<Plant>*
        sa.Column("GroupID", sa.Integer(), nullable=False, autoincrement=False),
        sa.Column("Plant", sa.Integer(), nullable=False, autoincrement=False),

        sa.Column("CommonName", sa.String(255), nullable=True),
        sa.Column("BotanicalName", sa.String(255), nullable=True),
        sa.Column("Size", sa.String(64), nullable=True),
        sa.Column("Quantity", sa.Integer(), nullable=True),
        sa.Column("Location", sa.String(255), nullable=True),
        sa.Column("Notes", sa.Text(), nullable=True),

        # Comma-joined photo URLs; NULL until the first upload
        sa.Column("ImageLinks", sa.Text(), nullable=True),

        sa.PrimaryKeyConstraint("GroupID", "Plant"),
    )


def downgrade() -> None:
    op.drop_table("PlantList")
