"""
Coordinate resolution for request and volunteer records.

resolve() is idempotent: a record whose cached coordinates are still valid
comes back untouched, with no geocoder call and no store write. Otherwise
the full address is geocoded and the pair is written back together with the
address that produced it, which becomes the new cache marker.

Failures are logged twice (operational log and audit row) and re-raised
unchanged. Nothing is retried here; callers decide whether to try again.
"""

from typing import Protocol, TypeVar

from .audit import ErrorLog, describe_error
from .errors import PreconditionError
from .logger import get_logger
from .records import COORDINATES, COORDINATES_ADDRESS, Coordinates, DomainRecord, RecordTable

logger = get_logger()

GEOCODE_OPERATION = "resolve coordinates"
PERSIST_OPERATION = "update coordinates"

R = TypeVar("R", bound=DomainRecord)


class Geocoder(Protocol):
    async def get_coordinates(self, address: str) -> Coordinates: ...


class CoordinateResolver:
    """Keeps a table's records' coordinates consistent with their addresses."""

    def __init__(self, table: RecordTable, geocoder: Geocoder, error_log: ErrorLog):
        self.table = table
        self.geocoder = geocoder
        self.error_log = error_log

    async def _report(self, record: DomainRecord, error: BaseException, operation: str) -> None:
        logger.record_failure(operation)
        logger.error(
            f"Error during {operation} for {record.display_name}",
            table=self.table.name,
            record_id=record.id,
            error=describe_error(error),
        )
        await self.error_log.log_error_to_table(self.table.name, record, error, operation)

    async def resolve(self, record: R) -> R:
        """
        Return `record` with coordinates matching its current address.

        Raises:
            PreconditionError: if the record's street address is not a string
            Exception: whatever the geocoder or the store raised, unchanged
        """
        if not isinstance(record.street_address, str):
            raise PreconditionError(f"Record {record.id} has no street address")

        if record.has_valid_coordinates():
            logger.record_cache_hit()
            return record

        address = record.full_address
        logger.record_geocode_call()
        try:
            coordinates = await self.geocoder.get_coordinates(address)
        except Exception as e:
            await self._report(record, e, GEOCODE_OPERATION)
            raise

        try:
            updated = await self.table.update(record.id, {
                COORDINATES: coordinates.to_json(),
                COORDINATES_ADDRESS: address,
            })
        except Exception as e:
            await self._report(record, e, PERSIST_OPERATION)
            raise
        logger.record_store_write()

        logger.debug("Resolved coordinates", table=self.table.name, record_id=record.id, address=address)
        return record.rewrap(updated)
