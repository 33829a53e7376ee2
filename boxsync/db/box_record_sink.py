"""Database service for extracted box record persistence."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Sequence

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from boxsync.domain import BoxRecord, domain_box_extract_number, domain_utc_now

from .interfaces import DataSinkError, DataSinkPort
from .schema import box_record_table, db_metadata

logger = logging.getLogger(__name__)


class SQLAlchemyBoxRecordSink(DataSinkPort):
    """SQLAlchemy implementation of the box record Data Sink."""

    def __init__(self, engine: Engine, clock: Callable[[], datetime] | None = None):
        """Initialize box record sink.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.
            clock: Optional provider of the extraction timestamp.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")

        self._engine = engine
        self._clock = clock or domain_utc_now

    def sink_open(self) -> None:
        """Create the box record table when it is missing.

        Raises:
            DataSinkError: Raised when the schema cannot be prepared.
        """

        try:
            db_metadata.create_all(self._engine, tables=[box_record_table], checkfirst=True)
        except SQLAlchemyError as error:
            raise DataSinkError("failed to prepare box record schema") from error

    def sink_insert_records(self, records: Sequence[BoxRecord]) -> int:
        """Insert extracted records in one transaction.

        Args:
            records: Records to insert.

        Returns:
            int: Number of inserted records.

        Raises:
            DataSinkError: Raised when the insert fails.
        """

        if not records:
            return 0

        extracted_at_utc = self._clock()
        parameters = [self._sink_map_record(record, extracted_at_utc) for record in records]
        try:
            with self._engine.begin() as connection:
                connection.execute(
                    text(
                        "INSERT INTO box_record ("
                        "box_number, status, location_full, location_access, type_name, type_full, dimensions, "
                        "area_m2, volume_m3, price_monthly, price_per_m3, price_daily, access_control, "
                        "locality, extracted_at_utc"
                        ") VALUES ("
                        ":box_number, :status, :location_full, :location_access, :type_name, :type_full, :dimensions, "
                        ":area_m2, :volume_m3, :price_monthly, :price_per_m3, :price_daily, :access_control, "
                        ":locality, :extracted_at_utc"
                        ")"
                    ),
                    parameters,
                )
        except SQLAlchemyError as error:
            raise DataSinkError(f"box record insert failed ({len(parameters)} rows)") from error

        logger.info("Inserted %s box records", len(parameters))
        return len(parameters)

    def sink_clear_by_unit(self, locality: str) -> int:
        """Remove previously stored records of one locality.

        Args:
            locality: Locality key of the unit.

        Returns:
            int: Number of removed records.

        Raises:
            DataSinkError: Raised when the delete fails.
        """

        try:
            with self._engine.begin() as connection:
                deleted = connection.execute(
                    text("DELETE FROM box_record WHERE locality = :locality"),
                    {"locality": locality},
                )
        except SQLAlchemyError as error:
            raise DataSinkError(f"box record clear failed for {locality}") from error

        logger.info("Cleared %s box records for %s", deleted.rowcount, locality)
        return int(deleted.rowcount or 0)

    def _sink_map_record(self, record: BoxRecord, extracted_at_utc: datetime) -> dict[str, Any]:
        """Map one record to insert parameters with numeric measurement columns."""

        return {
            "box_number": record.box_number,
            "status": record.status,
            "location_full": record.location_full,
            "location_access": record.location_access,
            "type_name": record.type_name,
            "type_full": record.type_full,
            "dimensions": record.dimensions,
            "area_m2": domain_box_extract_number(record.area_m2),
            "volume_m3": domain_box_extract_number(record.volume_m3),
            "price_monthly": record.price_monthly,
            "price_per_m3": record.price_per_m3,
            "price_daily": record.price_daily,
            "access_control": record.access_control,
            "locality": record.locality,
            "extracted_at_utc": extracted_at_utc,
        }
