"""Shared fixtures and test doubles for job store, adapter, sink and callback tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Sequence

import pytest
from sqlalchemy import Engine

from boxsync.adapters import AdapterPageError, AdapterSelectionError, ExtractionAdapterError
from boxsync.db import SQLAlchemyBoxRecordSink, SQLAlchemyJobStore, db_create_engine
from boxsync.delivery import CallbackDeliveryResult
from boxsync.domain import BoxRecord, UnitDefinition


def build_box_record(box_number: str, locality: str) -> BoxRecord:
    """Build a minimal box record for a locality."""

    return BoxRecord(
        box_number=box_number,
        status="Disponível",
        location_full="Piso 1",
        location_access="Piso 1",
        type_name="Box P",
        type_full="Box P - 1x1x2",
        dimensions="1x1x2",
        area_m2="1,00",
        volume_m3="2,00",
        price_monthly="R$ 100,00/mês",
        price_per_m3="R$ 50,00/m³",
        price_daily="R$ 3,33/dia",
        access_control="Livre",
        locality=locality,
    )


class ScriptedAdapter:
    """Extraction adapter double driven by per-unit page scripts.

    `pages_by_unit` maps a unit display name to a list of pages; each page is
    either a list of box numbers or an exception raised when that page is read.
    `selection_failures` maps a display name to the number of times selection
    fails before succeeding (`-1` fails forever). `login_failures` bounds how
    often `login_error` is raised the same way.
    """

    def __init__(
        self,
        pages_by_unit: dict[str, list[Any]],
        selection_failures: dict[str, int] | None = None,
        authenticated: bool = True,
        login_error: Exception | None = None,
        login_failures: int = -1,
    ):
        self.pages_by_unit = pages_by_unit
        self.selection_failures = dict(selection_failures or {})
        self.authenticated = authenticated
        self.login_error = login_error
        self.login_failures = login_failures
        self.calls: list[str] = []
        self._current_unit: str | None = None
        self._current_page = 0
        self.opened = False
        self.closed = False

    def adapter_source_name(self) -> str:
        return "scripted"

    def adapter_open(self) -> None:
        self.opened = True

    def adapter_close(self) -> None:
        self.closed = True

    def adapter_is_on_login_surface(self) -> bool:
        return not self.authenticated

    def adapter_has_session_marker(self) -> bool:
        return self.authenticated

    def adapter_login(self) -> None:
        self.calls.append("login")
        if self.login_error is not None and self.login_failures != 0:
            if self.login_failures > 0:
                self.login_failures -= 1
            raise self.login_error
        self.authenticated = True

    def adapter_select_unit(self, unit: UnitDefinition) -> None:
        self.calls.append(f"select:{unit.display_name}")
        remaining_failures = self.selection_failures.get(unit.display_name, 0)
        if remaining_failures != 0:
            if remaining_failures > 0:
                self.selection_failures[unit.display_name] = remaining_failures - 1
            raise AdapterSelectionError(f"cannot select {unit.display_name}", stage="select")
        self._current_unit = unit.display_name
        self._current_page = 0

    def adapter_apply_filters(self) -> None:
        self.calls.append("filters")

    def adapter_extract_page(self, unit: UnitDefinition) -> list[BoxRecord]:
        page = self.pages_by_unit.get(unit.display_name, [[]])[self._current_page]
        if isinstance(page, Exception):
            raise page
        return [build_box_record(box_number, unit.display_name) for box_number in page]

    def adapter_has_next_page(self) -> bool:
        return self._current_page + 1 < len(self.pages_by_unit.get(self._current_unit or "", [[]]))

    def adapter_goto_next_page(self) -> None:
        self._current_page += 1


class RecordingSink:
    """Data sink double recording clear and insert calls in order."""

    def __init__(self, insert_error: Exception | None = None):
        self.operations: list[tuple[str, str, int]] = []
        self.insert_error = insert_error

    def sink_clear_by_unit(self, locality: str) -> int:
        self.operations.append(("clear", locality, 0))
        return 0

    def sink_insert_records(self, records: Sequence[BoxRecord]) -> int:
        if self.insert_error is not None:
            raise self.insert_error
        if not records:
            return 0
        self.operations.append(("insert", records[0].locality, len(records)))
        return len(records)


class RecordingDelivery:
    """Callback delivery double recording every payload."""

    def __init__(self, success: bool = True):
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.success = success

    def delivery_send(self, url: str, payload: dict[str, Any]) -> CallbackDeliveryResult:
        self.sent.append((url, payload))
        return CallbackDeliveryResult(
            success=self.success,
            status_code=200 if self.success else 500,
            error=None if self.success else "HTTP 500",
            attempts=1 if self.success else 4,
        )


@pytest.fixture
def sqlite_database_url(tmp_path: Path) -> str:
    """Return a file-backed SQLite URL under the test temp directory."""

    return f"sqlite:///{tmp_path / 'jobs.db'}"


@pytest.fixture
def sqlite_engine(sqlite_database_url: str) -> Iterator[Engine]:
    """Create a SQLite engine and dispose it after the test."""

    engine = db_create_engine(sqlite_database_url)
    yield engine
    engine.dispose()


@pytest.fixture
def job_store(sqlite_engine: Engine) -> SQLAlchemyJobStore:
    """Return an opened job store with the default placeholder policy."""

    store = SQLAlchemyJobStore(engine=sqlite_engine)
    store.store_open()
    return store


@pytest.fixture
def box_record_sink(sqlite_engine: Engine) -> SQLAlchemyBoxRecordSink:
    """Return an opened box record sink."""

    sink = SQLAlchemyBoxRecordSink(engine=sqlite_engine)
    sink.sink_open()
    return sink


@pytest.fixture
def three_units() -> tuple[UnitDefinition, ...]:
    """Return three active units in submission order."""

    return (
        UnitDefinition(unit_id="u1", display_name="Unit One"),
        UnitDefinition(unit_id="u2", display_name="Unit Two"),
        UnitDefinition(unit_id="u3", display_name="Unit Three"),
    )


def page_failure(message: str = "page read failed") -> ExtractionAdapterError:
    """Return a page-level adapter failure for scripted pages."""

    return AdapterPageError(message, stage="extract")
