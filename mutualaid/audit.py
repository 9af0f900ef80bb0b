"""
Audit rows for failed operations.

Failures that reach a person (a requester without coordinates, a volunteer
who cannot be matched) are written to an errors table in the record store
so coordinators can see them next to the records themselves.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from .logger import get_logger
from .records import RecordTable

logger = get_logger()


def describe_error(error: BaseException) -> str:
    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


class ErrorLog:
    """Writes one audit row per failure into the errors table."""

    def __init__(self, table: RecordTable):
        self.table = table

    def build_row(self, table_name: str, record, error: BaseException, operation: str) -> Dict[str, Any]:
        return {
            "Table": table_name,
            "Record ID": getattr(record, "id", None),
            "Operation": operation,
            "Error": describe_error(error),
            "Logged At": datetime.now(timezone.utc).isoformat(),
        }

    async def log_error_to_table(self, table_name: str, record, error: BaseException, operation: str) -> bool:
        """
        Write an audit row for a failed operation.

        A failure to write the row is logged and reported through the return
        value only; it never replaces the error being recorded.

        Returns:
            True if the row was written
        """
        row = self.build_row(table_name, record, error, operation)
        try:
            await self.table.create([row])
        except Exception as e:
            logger.error(
                "Failed to write audit row",
                table=table_name,
                record_id=row["Record ID"],
                operation=operation,
                error=describe_error(e),
            )
            return False
        return True
