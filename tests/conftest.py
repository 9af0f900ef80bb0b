"""
Pytest configuration and shared fixtures.
"""

import pytest
from typing import Any, Dict, List

from mutualaid.audit import ErrorLog
from mutualaid.config import Config
from mutualaid.errors import StoreError
from mutualaid.records import (
    ADDRESS,
    CAPABILITIES,
    COORDINATES,
    COORDINATES_ADDRESS,
    TASKS,
    Coordinates,
    RequestRecord,
    StoreRecord,
    VolunteerRecord,
)
from mutualaid.task import build_default_catalog


class FakeTable:
    """In-memory RecordTable that records every call and can be told to fail."""

    def __init__(self, name: str = "Requests", page_size: int = 100):
        self.name = name
        self.page_size = page_size
        self.records: Dict[str, StoreRecord] = {}
        self.calls: List[tuple] = []
        self.fail_update = None
        self.fail_create = None
        # Number of records create() commits before failing or returning short
        self.create_limit = None
        self._next_id = 1

    def add(self, fields: Dict[str, Any]) -> StoreRecord:
        record = StoreRecord(f"rec{self._next_id:03d}", fields)
        self._next_id += 1
        self.records[record.id] = record
        return record

    async def find(self, record_id):
        self.calls.append(("find", record_id))
        return self.records[record_id]

    async def update(self, record_id, changes):
        self.calls.append(("update", record_id, changes))
        if self.fail_update is not None:
            raise self.fail_update
        current = self.records[record_id]
        updated = StoreRecord(record_id, {**current.fields, **changes})
        self.records[record_id] = updated
        return updated

    async def create(self, records):
        self.calls.append(("create", records))
        limit = self.create_limit
        if limit is None:
            limit = 0 if self.fail_create is not None else len(records)
        created = [self.add(dict(fields)) for fields in records[:limit]]
        if self.fail_create is not None:
            if isinstance(self.fail_create, StoreError):
                self.fail_create.created = created
            raise self.fail_create
        return created

    async def select(self, view=None, filter_by_formula=None):
        self.calls.append(("select", view, filter_by_formula))
        items = list(self.records.values())
        for start in range(0, len(items), self.page_size):
            yield items[start:start + self.page_size]

    @property
    def writes(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("update", "create")]


class FakeGeocoder:
    def __init__(self, result: Coordinates = Coordinates(40.7128, -74.006)):
        self.result = result
        self.error = None
        self.calls: List[str] = []

    async def get_coordinates(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def config() -> Config:
    return Config(dispatch_city="Springfield", dispatch_state="IL")


@pytest.fixture
def catalog():
    return build_default_catalog()


@pytest.fixture
def request_table() -> FakeTable:
    return FakeTable("Requests")


@pytest.fixture
def volunteer_table() -> FakeTable:
    return FakeTable("Volunteers")


@pytest.fixture
def error_table() -> FakeTable:
    return FakeTable("Errors")


@pytest.fixture
def error_log(error_table) -> ErrorLog:
    return ErrorLog(error_table)


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def make_request(request_table, config):
    """Add a request row to the fake table and wrap it."""
    def _make(tasks=("Grocery shopping",), address="12 Elm St", **fields) -> RequestRecord:
        data = {"Name": "Pat Doe", TASKS: list(tasks), ADDRESS: address}
        data.update(fields)
        return RequestRecord(request_table.add(data), config)
    return _make


@pytest.fixture
def make_volunteer(volunteer_table, config):
    """Add a volunteer row to the fake table and wrap it."""
    def _make(capabilities=(), address="99 Oak Ave", **fields) -> VolunteerRecord:
        data = {"Full Name": "Sam Helper", CAPABILITIES: list(capabilities), ADDRESS: address}
        data.update(fields)
        return VolunteerRecord(volunteer_table.add(data), config)
    return _make


@pytest.fixture
def cached_fields():
    """Coordinate cache fields for a given full address."""
    def _cached(marker, coordinates=Coordinates(1.5, 2.5)):
        return {COORDINATES: coordinates.to_json(), COORDINATES_ADDRESS: marker}
    return _cached
