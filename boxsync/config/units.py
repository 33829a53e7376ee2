"""Unit catalog loading for extraction batches."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from boxsync.domain import UnitDefinition

from .settings import SettingsLoadError


class _UnitCatalogEntry(BaseModel):
    """One unit entry as stored in the catalog file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    unit_id: str = Field(alias="id", min_length=1)
    display_name: str = Field(alias="displayName", min_length=1)
    active: bool = True


class _UnitCatalog(BaseModel):
    """Catalog document wrapper (`{"bases": [...]}`)."""

    model_config = ConfigDict(extra="ignore")

    bases: list[_UnitCatalogEntry] = Field(default_factory=list)


def config_load_units(path: str | Path, include_inactive: bool = False) -> tuple[UnitDefinition, ...]:
    """Load the ordered unit catalog from a JSON file.

    Args:
        path: Catalog file path.
        include_inactive: Whether inactive units are returned as well.

    Returns:
        tuple[UnitDefinition, ...]: Units in catalog order.

    Raises:
        SettingsLoadError: Raised when the file is missing, unreadable or invalid.
    """

    catalog_path = Path(path)
    try:
        raw_document = json.loads(catalog_path.read_text(encoding="utf-8"))
        catalog = _UnitCatalog.model_validate(raw_document)
    except OSError as error:
        raise SettingsLoadError(f"Unit catalog could not be read: {catalog_path}") from error
    except (json.JSONDecodeError, ValidationError) as error:
        raise SettingsLoadError(f"Unit catalog is invalid: {catalog_path}. Details: {error}") from error

    seen_unit_ids: set[str] = set()
    units: list[UnitDefinition] = []
    for entry in catalog.bases:
        if entry.unit_id in seen_unit_ids:
            raise SettingsLoadError(f"Unit catalog contains duplicate id: {entry.unit_id}")
        seen_unit_ids.add(entry.unit_id)
        if not entry.active and not include_inactive:
            continue
        units.append(
            UnitDefinition(
                unit_id=entry.unit_id.strip(),
                display_name=entry.display_name.strip(),
                active=entry.active,
            )
        )
    return tuple(units)
