"""Parsing helpers turning raw box table rows into normalized records.

The extraction adapter returns each table row as plain cell texts plus the
text of the first link inside each cell. Keeping the normalization here, away
from the browser session, makes column heuristics deterministic and testable.
"""

from __future__ import annotations

import re
from typing import Any

from .models import BoxRecord

BOX_TABLE_MIN_COLUMNS = 6
BOX_NUMERIC_VALUE_CAP = 99999.99

_DOMAIN_BOX_DIMENSIONS_PATTERN = re.compile(r"(\d+(?:,\d+)?)\s*x\s*(\d+(?:,\d+)?)\s*x\s*(\d+(?:,\d+)?)")
_DOMAIN_BOX_NUMBER_PATTERN = re.compile(r"(\d+(?:,\d+)?)")


def domain_box_split_lines(value: str) -> list[str]:
    """Split multi-line cell text into stripped non-empty lines.

    Args:
        value: Raw cell text.

    Returns:
        list[str]: Non-empty stripped lines.
    """

    return [line.strip() for line in value.split("\n") if line.strip()]


def domain_box_parse_row(row: dict[str, Any], locality: str) -> BoxRecord | None:
    """Parse one raw table row into a normalized box record.

    Column layout: status, box number, location, type, measurements
    (`m² / m³`), prices (monthly, per m³, daily) and an optional access
    control column.

    Args:
        row: Raw row payload with `cells` texts and optional `links` texts.
        locality: Locality key of the unit being processed.

    Returns:
        BoxRecord | None: Parsed record, or None when the row has too few columns.
    """

    cells = [str(cell or "").strip() for cell in row.get("cells", [])]
    if len(cells) < BOX_TABLE_MIN_COLUMNS:
        return None

    raw_links = list(row.get("links", []))
    links = [str(link or "").strip() for link in raw_links] + [""] * (len(cells) - len(raw_links))

    status_lines = domain_box_split_lines(cells[0])
    status = status_lines[0] if status_lines else ""

    box_number = links[1] or cells[1]

    location_lines = domain_box_split_lines(cells[2])
    location = location_lines[0] if location_lines else cells[2]

    type_text = cells[3]
    type_name = links[3] or type_text.split(" - ")[0]
    dimensions_match = _DOMAIN_BOX_DIMENSIONS_PATTERN.search(type_text)
    dimensions = "x".join(dimensions_match.groups()) if dimensions_match else ""

    measurement_parts = cells[4].split(" / ")
    area_m2 = measurement_parts[0].replace("m²", "").strip() if measurement_parts else ""
    volume_m3 = measurement_parts[1].replace("m³", "").strip() if len(measurement_parts) > 1 else ""

    price_monthly, price_per_m3, price_daily = domain_box_classify_price_lines(cells[5])
    access_control = cells[6] if len(cells) > 6 else ""

    return BoxRecord(
        box_number=box_number,
        status=status[:50],
        location_full=location,
        location_access=location[:100],
        type_name=type_name[:100],
        type_full=type_text,
        dimensions=dimensions[:50],
        area_m2=area_m2,
        volume_m3=volume_m3,
        price_monthly=price_monthly,
        price_per_m3=price_per_m3,
        price_daily=price_daily,
        access_control=access_control,
        locality=locality,
    )


def domain_box_classify_price_lines(value: str) -> tuple[str, str, str]:
    """Split a price cell into monthly, per-m³ and daily price lines.

    Args:
        value: Raw price cell text.

    Returns:
        tuple[str, str, str]: Monthly, per-m³ and daily price texts, blank when absent.
    """

    price_monthly = ""
    price_per_m3 = ""
    price_daily = ""
    for line in domain_box_split_lines(value):
        if "/mês" in line:
            price_monthly = line
        elif "/m³" in line:
            price_per_m3 = line
        elif "/dia" in line:
            price_daily = line
    return price_monthly, price_per_m3, price_daily


def domain_box_parse_rows(rows: list[dict[str, Any]], locality: str) -> list[BoxRecord]:
    """Parse raw rows and drop those that do not match the table layout.

    Args:
        rows: Raw row payloads from one page.
        locality: Locality key of the unit being processed.

    Returns:
        list[BoxRecord]: Parsed records in page order.
    """

    parsed_records: list[BoxRecord] = []
    for row in rows:
        record = domain_box_parse_row(row, locality=locality)
        if record is not None:
            parsed_records.append(record)
    return parsed_records


def domain_box_extract_number(value: str | None) -> float:
    """Extract the first decimal number from measurement text.

    Comma decimal separators are accepted and values are capped to fit a
    `NUMERIC(10, 2)` column.

    Args:
        value: Measurement text such as `"12,5 m²"`.

    Returns:
        float: Parsed value, or `0.0` when no number is present.
    """

    if not value:
        return 0.0
    match = _DOMAIN_BOX_NUMBER_PATTERN.search(value)
    if match is None:
        return 0.0
    return min(float(match.group(1).replace(",", ".")), BOX_NUMERIC_VALUE_CAP)
