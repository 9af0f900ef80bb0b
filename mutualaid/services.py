"""
Per-table service facades.

RequestService and VolunteerService wire a table, the shared resolver and
the splitter or sampler together, and add the paged queries a dispatch run
needs (open-request counts, loneliness outreach candidates).
"""

from collections import Counter
from typing import Callable, Dict, List, Mapping, Optional

from .audit import ErrorLog
from .config import Config
from .logger import get_logger
from .records import ACCOUNT_DISABLED, CONNECTED_VOLUNTEER, STATUS, RecordTable, RequestRecord, StoreRecord, VolunteerRecord
from .resolver import CoordinateResolver, Geocoder
from .sampler import VolunteerSampler
from .splitter import RequestSplitter, SplitResult
from .task import LONELINESS_TASK, TaskCatalog

logger = get_logger()

OPEN_ASSIGNED_REQUESTS = "AND({Status} != 'Completed', {Connected Volunteer} != '')"
ACTIVE_VOLUNTEERS = f"{{{ACCOUNT_DISABLED}}} != TRUE()"
LONELINESS_SAMPLE_SIZE = 10


def is_open_assigned(record: StoreRecord) -> bool:
    return record.get(STATUS) != "Completed" and bool(record.get(CONNECTED_VOLUNTEER))


def is_active_volunteer(record: StoreRecord) -> bool:
    return not record.get(ACCOUNT_DISABLED)


# Python equivalents of the formulas above, for stores that cannot evaluate them
LOCAL_FILTERS: Mapping[str, Callable[[StoreRecord], bool]] = {
    OPEN_ASSIGNED_REQUESTS: is_open_assigned,
    ACTIVE_VOLUNTEERS: is_active_volunteer,
}


class RequestService:
    """APIs that deal with requests."""

    def __init__(self, table: RecordTable, geocoder: Geocoder, error_log: ErrorLog, config: Config):
        self.table = table
        self.config = config
        self.resolver = CoordinateResolver(table, geocoder, error_log)
        self.splitter = RequestSplitter(table, error_log)

    def wrap(self, record) -> RequestRecord:
        return RequestRecord(record, self.config)

    async def resolve_and_update_coords(self, request: RequestRecord) -> RequestRecord:
        return await self.resolver.resolve(request)

    async def split_multi_task_request(self, request: RequestRecord) -> SplitResult:
        return await self.splitter.split(request)

    async def requests(self, filter_by_formula: Optional[str] = None) -> List[RequestRecord]:
        """All requests in the configured view."""
        found = []
        async for page in self.table.select(view=self.config.requests_view_name, filter_by_formula=filter_by_formula):
            found.extend(self.wrap(record) for record in page)
        return found

    async def get_volunteer_task_counts(self) -> Dict[str, int]:
        """
        Get the number of open tasks assigned to each volunteer.

        Returns:
            Mapping of volunteer record id to open request count
        """
        counts: Counter = Counter()
        async for page in self.table.select(
            view=self.config.requests_view_name,
            filter_by_formula=OPEN_ASSIGNED_REQUESTS,
        ):
            for record in page:
                volunteer = self.wrap(record).connected_volunteer
                if volunteer:
                    counts[volunteer] += 1
        return dict(counts)


class VolunteerService:
    """APIs that deal with volunteers."""

    def __init__(
        self,
        table: RecordTable,
        geocoder: Geocoder,
        error_log: ErrorLog,
        config: Config,
        catalog: TaskCatalog,
        sampler: Optional[VolunteerSampler] = None,
    ):
        self.table = table
        self.config = config
        self.catalog = catalog
        self.resolver = CoordinateResolver(table, geocoder, error_log)
        self.sampler = sampler or VolunteerSampler(catalog)

    def wrap(self, record) -> VolunteerRecord:
        return VolunteerRecord(record, self.config)

    async def resolve_and_update_coords(self, volunteer: VolunteerRecord) -> VolunteerRecord:
        return await self.resolver.resolve(volunteer)

    async def active_volunteers(self) -> List[VolunteerRecord]:
        found = []
        async for page in self.table.select(
            view=self.config.volunteers_view_name,
            filter_by_formula=ACTIVE_VOLUNTEERS,
        ):
            found.extend(self.wrap(record) for record in page)
        return found

    async def find_volunteers_for_loneliness(self) -> List[VolunteerRecord]:
        """Random sample of at most 10 active volunteers able to help with loneliness."""
        pool = await self.active_volunteers()
        task = self.catalog.get(LONELINESS_TASK)
        selected = self.sampler.sample(task, pool, LONELINESS_SAMPLE_SIZE)
        logger.info("Selected loneliness volunteers", pool=len(pool), selected=len(selected))
        return selected
