"""
Splitting multi-task requests into one request per task.

The original record keeps the first task and an archive of the full list;
each remaining task gets a cloned record labelled with its position. The
original update must succeed before any clone is attempted. Clone creation
is not transactional: clones the store created before a failure keep their
records, the rest carry the error in the SplitResult, and the split of the
original stands. Failures are logged and written to the errors table.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .audit import ErrorLog, describe_error
from .errors import PreconditionError, StoreError
from .logger import get_logger
from .records import ORIGINAL_TASKS, TASK_ORDER, TASKS, RecordTable, RequestRecord, StoreRecord

logger = get_logger()

SPLIT_OPERATION = "split request"
CLONE_OPERATION = "clone request"


def task_order(position: int, total: int) -> str:
    return f"{position} of {total}"


def clone_request_fields(request: RequestRecord, task_label: str, order: str) -> Dict[str, Any]:
    """Copy of the request's fields naming only `task_label`."""
    fields = dict(request.raw_fields)
    fields[TASKS] = [task_label]
    fields[ORIGINAL_TASKS] = request.task_labels
    fields[TASK_ORDER] = order
    return fields


@dataclass
class CloneOutcome:
    """What happened to one cloned per-task request."""

    task: str
    order: str
    fields: Dict[str, Any]
    record: Optional[StoreRecord] = None
    error: Optional[BaseException] = None

    @property
    def created(self) -> bool:
        return self.record is not None


@dataclass
class SplitResult:
    original: RequestRecord
    clones: List[CloneOutcome] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return all(clone.created for clone in self.clones)

    @property
    def failed(self) -> List[CloneOutcome]:
        return [clone for clone in self.clones if not clone.created]


class RequestSplitter:
    def __init__(self, table: RecordTable, error_log: Optional[ErrorLog] = None):
        self.table = table
        self.error_log = error_log

    async def _report(self, request: RequestRecord, error: BaseException, operation: str, message: str, **context) -> None:
        logger.record_failure(operation)
        logger.error(message, table=self.table.name, record_id=request.id, error=describe_error(error), **context)
        if self.error_log is not None:
            await self.error_log.log_error_to_table(self.table.name, request, error, operation)

    async def split(self, request: RequestRecord) -> SplitResult:
        """
        Split `request` into one atomic request per task.

        Args:
            request: Request naming more than one task

        Returns:
            SplitResult with the updated original and one outcome per clone

        Raises:
            PreconditionError: if the request names fewer than two tasks
            Exception: whatever the store raised while updating the original
        """
        labels = request.task_labels
        total = len(labels)
        if total < 2:
            raise PreconditionError(f"Request {request.id} has {total} task(s); nothing to split")

        try:
            updated = await self.table.update(request.id, {
                TASKS: [labels[0]],
                ORIGINAL_TASKS: labels,
                TASK_ORDER: task_order(1, total),
            })
        except Exception as e:
            await self._report(request, e, SPLIT_OPERATION, f"Error updating '{TASKS}' column in request {request.id}")
            raise
        logger.record_store_write()

        clones = []
        for index, label in enumerate(labels[1:], start=2):
            order = task_order(index, total)
            clones.append(CloneOutcome(label, order, clone_request_fields(request, label, order)))

        error: Optional[BaseException] = None
        try:
            created = await self.table.create([clone.fields for clone in clones])
        except StoreError as e:
            created, error = e.created, e
        except Exception as e:
            created, error = [], e

        # Stores create in order, so what came back belongs to the leading clones
        for clone, record in zip(clones, created):
            clone.record = record
        logger.record_store_write(len(created))

        if error is None and len(created) < len(clones):
            error = StoreError(f"Store created {len(created)} of {len(clones)} cloned requests")
        if error is not None:
            for clone in clones[len(created):]:
                clone.error = error
            await self._report(
                request,
                error,
                CLONE_OPERATION,
                f"Error cloning request with multiple tasks for request {request.id}",
                clones=len(clones),
                created=len(created),
            )

        result = SplitResult(original=request.rewrap(updated), clones=clones)
        logger.record_split(clones_failed=len(result.failed))
        return result
