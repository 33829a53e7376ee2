"""SQLAlchemy table definitions shared by db services and migrations."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, MetaData, Numeric, String, Table, Text

db_metadata = MetaData()

scrape_job_table = Table(
    "scrape_job",
    db_metadata,
    Column("job_id", String(64), primary_key=True),
    Column("status", String(16), nullable=False),
    Column("created_at_utc", DateTime(timezone=True), nullable=False),
    Column("updated_at_utc", DateTime(timezone=True), nullable=False),
    Column("document", JSON, nullable=False),
    Index("ix_scrape_job_status_created_at_utc", "status", "created_at_utc"),
)

box_record_table = Table(
    "box_record",
    db_metadata,
    Column("box_record_id", Integer, primary_key=True, autoincrement=True),
    Column("box_number", Text, nullable=False),
    Column("status", Text, nullable=False),
    Column("location_full", Text, nullable=False),
    Column("location_access", Text, nullable=False),
    Column("type_name", Text, nullable=False),
    Column("type_full", Text, nullable=False),
    Column("dimensions", Text, nullable=False),
    Column("area_m2", Numeric(10, 2), nullable=False),
    Column("volume_m3", Numeric(10, 2), nullable=False),
    Column("price_monthly", Text, nullable=False),
    Column("price_per_m3", Text, nullable=False),
    Column("price_daily", Text, nullable=False),
    Column("access_control", Text, nullable=False),
    Column("locality", Text, nullable=False),
    Column("extracted_at_utc", DateTime(timezone=True), nullable=False),
    Index("ix_box_record_locality", "locality"),
)
