"""
Store records and the domain records wrapped around them.

A StoreRecord is what a RecordTable hands back: an id plus a field map.
RequestRecord and VolunteerRecord add the accessors the services need
(full address, coordinate cache, tasks, capabilities) on top of one.
"""

import json
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    NamedTuple,
    Optional,
    Protocol,
    TYPE_CHECKING,
)

from .config import Config

if TYPE_CHECKING:
    from .task import Task, TaskCatalog

# Field names shared with the record store
ADDRESS = "Address"
NAME = "Name"
FULL_NAME = "Full Name"
TASKS = "Tasks"
ORIGINAL_TASKS = "Original Tasks"
TASK_ORDER = "Task Order"
CONNECTED_VOLUNTEER = "Connected Volunteer"
STATUS = "Status"
COORDINATES = "_coordinates"
COORDINATES_ADDRESS = "_coordinates_address"
CAPABILITIES = "I can provide the following support (non-binding)"
PRIVATE_TRANSPORTATION = "Do you have a private mode of transportation with valid license/insurance? "
ACCOUNT_DISABLED = "Account Disabled"


class StoreRecord:
    """A row as returned by a RecordTable."""

    def __init__(self, record_id: str, fields: Optional[Dict[str, Any]] = None):
        self.id = record_id
        self.fields = dict(fields or {})

    def get(self, field: str) -> Any:
        return self.fields.get(field)

    def __repr__(self) -> str:
        return f"StoreRecord(id={self.id!r}, fields={self.fields!r})"


class RecordTable(Protocol):
    """Operations the services need from one table of the record store."""

    name: str

    async def find(self, record_id: str) -> StoreRecord: ...

    async def update(self, record_id: str, changes: Dict[str, Any]) -> StoreRecord: ...

    async def create(self, records: List[Dict[str, Any]]) -> List[StoreRecord]: ...

    def select(
        self, view: Optional[str] = None, filter_by_formula: Optional[str] = None
    ) -> AsyncIterator[List[StoreRecord]]: ...


class Coordinates(NamedTuple):
    latitude: float
    longitude: float

    def to_json(self) -> str:
        return json.dumps({"lat": self.latitude, "lng": self.longitude})

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["Coordinates"]:
        """Parse a serialized pair; None for empty or malformed values."""
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return cls(float(data["lat"]), float(data["lng"]))
        except (TypeError, ValueError, KeyError):
            return None


class DomainRecord:
    """
    Base wrapper shared by requests and volunteers.

    Both carry a street address and the same coordinate cache fields, which
    is all the CoordinateResolver relies on.
    """

    display_name_field = NAME

    def __init__(self, record: StoreRecord, config: Config):
        self.record = record
        self.config = config

    def get(self, field: str) -> Any:
        return self.record.get(field)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def raw_fields(self) -> Dict[str, Any]:
        return self.record.fields

    @property
    def display_name(self) -> Any:
        return self.get(self.display_name_field)

    @property
    def street_address(self) -> Any:
        return self.get(ADDRESS)

    @property
    def full_address(self) -> str:
        """Street address plus the configured dispatch city and state."""
        return f"{self.street_address} {self.config.address_suffix()}"

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return Coordinates.from_json(self.get(COORDINATES))

    @property
    def coordinates_address(self) -> Optional[str]:
        """Address that produced the cached coordinates."""
        return self.get(COORDINATES_ADDRESS)

    def has_valid_coordinates(self) -> bool:
        """
        True when cached coordinates can be reused.

        A missing or blank marker counts as valid; only a marker that
        differs from the current full address marks the cache stale.
        """
        if self.coordinates is None:
            return False
        marker = self.coordinates_address
        if marker is None or not str(marker).strip():
            return True
        return marker == self.full_address

    def rewrap(self, record: StoreRecord) -> "DomainRecord":
        """Wrap an updated store record in the same domain type."""
        return type(self)(record, self.config)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class VolunteerRecord(DomainRecord):
    """Volunteer offering help."""

    display_name_field = FULL_NAME

    @property
    def capabilities(self) -> List[str]:
        capabilities = self.get(CAPABILITIES) or []
        if isinstance(capabilities, str):
            return [capabilities]
        return list(capabilities)


class RequestRecord(DomainRecord):
    """Request for help naming one or more tasks."""

    @property
    def task_labels(self) -> List[str]:
        """Raw task labels in the order the requester gave them."""
        labels = self.get(TASKS) or []
        # A single-select field holds one label, not a list
        if isinstance(labels, str):
            return [labels]
        return list(labels)

    def tasks(self, catalog: "TaskCatalog") -> List["Task"]:
        """Known tasks for this request; labels missing from the catalog are skipped."""
        found = (catalog.lookup(label) for label in self.task_labels)
        return [task for task in found if task is not None]

    @property
    def connected_volunteer(self) -> Optional[str]:
        linked = self.get(CONNECTED_VOLUNTEER) or []
        return linked[0] if linked else None
