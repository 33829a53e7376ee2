"""Job store and box record baseline

Revision ID: 20261018_01
Revises: None
Create Date: 2026-10-18
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "scrape_job",
        sa.Column("job_id", sa.String(length=64), primary_key=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("document", sa.JSON(), nullable=False),
    )
    op.create_index("ix_scrape_job_status_created_at_utc", "scrape_job", ["status", "created_at_utc"])

    op.create_table(
        "box_record",
        sa.Column("box_record_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("box_number", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("location_full", sa.Text(), nullable=False),
        sa.Column("location_access", sa.Text(), nullable=False),
        sa.Column("type_name", sa.Text(), nullable=False),
        sa.Column("type_full", sa.Text(), nullable=False),
        sa.Column("dimensions", sa.Text(), nullable=False),
        sa.Column("area_m2", sa.Numeric(10, 2), nullable=False),
        sa.Column("volume_m3", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_monthly", sa.Text(), nullable=False),
        sa.Column("price_per_m3", sa.Text(), nullable=False),
        sa.Column("price_daily", sa.Text(), nullable=False),
        sa.Column("access_control", sa.Text(), nullable=False),
        sa.Column("locality", sa.Text(), nullable=False),
        sa.Column("extracted_at_utc", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_box_record_locality", "box_record", ["locality"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_box_record_locality", table_name="box_record")
    op.drop_table("box_record")
    op.drop_index("ix_scrape_job_status_created_at_utc", table_name="scrape_job")
    op.drop_table("scrape_job")
