"""Regression tests for box table row parsing helpers."""

from boxsync.domain import domain_box_extract_number, domain_box_parse_row, domain_box_parse_rows

_FULL_ROW = {
    "cells": [
        "Disponível\nDesde 01/02",
        "A-101",
        "Piso 1 - Corredor B\nAcesso pela rampa",
        "Box M - 1,5x2x2,5",
        "3,00 m² / 7,50 m³",
        "R$ 320,00/mês\nR$ 42,67/m³\nR$ 10,67/dia",
        "Biometria",
    ],
    "links": ["", "A-101", "", "Box M"],
}


def test_domain_box_parse_row_maps_all_columns() -> None:
    """Map every column of a complete row into the normalized record.

    Returns:
        None: Assertions validate deterministic column mapping.

    Raises:
        AssertionError: Raised when parsed values differ from the row content.
    """

    record = domain_box_parse_row(_FULL_ROW, locality="Unit One")

    assert record is not None
    assert record.box_number == "A-101"
    assert record.status == "Disponível"
    assert record.location_full == "Piso 1 - Corredor B"
    assert record.location_access == "Piso 1 - Corredor B"
    assert record.type_name == "Box M"
    assert record.type_full == "Box M - 1,5x2x2,5"
    assert record.dimensions == "1,5x2x2,5"
    assert record.area_m2 == "3,00"
    assert record.volume_m3 == "7,50"
    assert record.price_monthly == "R$ 320,00/mês"
    assert record.price_per_m3 == "R$ 42,67/m³"
    assert record.price_daily == "R$ 10,67/dia"
    assert record.access_control == "Biometria"
    assert record.locality == "Unit One"


def test_domain_box_parse_row_falls_back_to_cell_text_without_links() -> None:
    row = {"cells": _FULL_ROW["cells"][:6]}

    record = domain_box_parse_row(row, locality="Unit One")

    assert record.box_number == "A-101"
    assert record.type_name == "Box M"
    assert record.access_control == ""


def test_domain_box_parse_rows_skips_short_rows() -> None:
    rows = [_FULL_ROW, {"cells": ["Ocupado", "A-102"]}, {"cells": []}]

    records = domain_box_parse_rows(rows, locality="Unit One")

    assert [record.box_number for record in records] == ["A-101"]


def test_domain_box_parse_row_leaves_missing_prices_blank() -> None:
    row = {"cells": ["Disponível", "B-1", "Piso 2", "Box P", "1 m²", "Consulte"]}

    record = domain_box_parse_row(row, locality="Unit Two")

    assert (record.price_monthly, record.price_per_m3, record.price_daily) == ("", "", "")
    assert record.volume_m3 == ""
    assert record.dimensions == ""


def test_domain_box_extract_number_handles_comma_decimals_and_cap() -> None:
    assert domain_box_extract_number("12,5 m²") == 12.5
    assert domain_box_extract_number("7") == 7.0
    assert domain_box_extract_number("") == 0.0
    assert domain_box_extract_number(None) == 0.0
    assert domain_box_extract_number("sem medida") == 0.0
    assert domain_box_extract_number("1234567") == 99999.99
