"""
Local record store backed by SQLite.

Uses SQLAlchemy to keep Airtable-shaped records (an id plus a JSON field
map) on disk, so dispatch runs and tests can work without the hosted base.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .errors import StoreError
from .logger import get_logger
from .records import StoreRecord

logger = get_logger()

Base = declarative_base()


class StoredRecord(Base):
    """One row of one logical table."""

    __tablename__ = "records"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(String, nullable=False, unique=True, index=True)
    table_name = Column(String, nullable=False, index=True)
    fields = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


def new_record_id() -> str:
    return f"rec{uuid.uuid4().hex[:14]}"


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    engine.dispose()


class LocalTable:
    """
    RecordTable over a SQLite file.

    `view` is accepted for interface parity with Airtable and ignored. Airtable
    formulas are not evaluated: `filters` maps each formula a caller uses to
    an equivalent Python predicate, and `where` filters every select.
    """

    def __init__(
        self,
        db_path: Path,
        name: str,
        page_size: int = 100,
        where: Optional[Callable[[StoreRecord], bool]] = None,
        filters: Optional[Mapping[str, Callable[[StoreRecord], bool]]] = None,
    ):
        init_database(db_path)
        self.name = name
        self.page_size = page_size
        self.where = where
        self.filters = dict(filters or {})
        self._Session = sessionmaker(bind=create_engine(f"sqlite:///{db_path}"))

    def _row(self, session, record_id: str) -> StoredRecord:
        row = session.query(StoredRecord).filter_by(table_name=self.name, record_id=record_id).first()
        if row is None:
            raise StoreError(f"Record {record_id} not found in {self.name}", status_code=404)
        return row

    @staticmethod
    def _to_record(row: StoredRecord) -> StoreRecord:
        return StoreRecord(row.record_id, row.fields)

    def find_sync(self, record_id: str) -> StoreRecord:
        with self._Session() as session:
            return self._to_record(self._row(session, record_id))

    def update_sync(self, record_id: str, changes: Dict[str, Any]) -> StoreRecord:
        with self._Session() as session:
            row = self._row(session, record_id)
            # Reassign so the JSON column is flagged dirty
            row.fields = {**row.fields, **changes}
            try:
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Local update failed", table=self.name, record_id=record_id, error=str(e))
                raise StoreError(f"Failed to update {record_id} in {self.name}: {e}") from e
            return self._to_record(row)

    def create_sync(self, records: List[Dict[str, Any]]) -> List[StoreRecord]:
        with self._Session() as session:
            rows = [
                StoredRecord(record_id=new_record_id(), table_name=self.name, fields=dict(fields))
                for fields in records
            ]
            session.add_all(rows)
            try:
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Local create failed", table=self.name, count=len(rows), error=str(e))
                raise StoreError(f"Failed to create records in {self.name}: {e}") from e
            return [self._to_record(row) for row in rows]

    def page_sync(self, after_seq: int) -> List[StoredRecord]:
        with self._Session() as session:
            rows = (
                session.query(StoredRecord)
                .filter(StoredRecord.table_name == self.name, StoredRecord.seq > after_seq)
                .order_by(StoredRecord.seq)
                .limit(self.page_size)
                .all()
            )
            session.expunge_all()
            return rows

    def count(self) -> int:
        with self._Session() as session:
            return session.query(StoredRecord).filter_by(table_name=self.name).count()

    async def find(self, record_id: str) -> StoreRecord:
        return self.find_sync(record_id)

    async def update(self, record_id: str, changes: Dict[str, Any]) -> StoreRecord:
        return self.update_sync(record_id, changes)

    async def create(self, records: List[Dict[str, Any]]) -> List[StoreRecord]:
        return self.create_sync(records)

    async def select(
        self, view: Optional[str] = None, filter_by_formula: Optional[str] = None
    ) -> AsyncIterator[List[StoreRecord]]:
        """
        Yield pages in insertion order.

        Raises:
            StoreError: if `filter_by_formula` has no entry in `filters`
        """
        formula_filter = None
        if filter_by_formula:
            formula_filter = self.filters.get(filter_by_formula)
            if formula_filter is None:
                raise StoreError(f"Filter formula not supported by local table {self.name}: {filter_by_formula}")
        after_seq = 0
        while True:
            rows = self.page_sync(after_seq)
            if not rows:
                return
            after_seq = rows[-1].seq
            page = [self._to_record(row) for row in rows]
            if formula_filter is not None:
                page = [record for record in page if formula_filter(record)]
            if self.where is not None:
                page = [record for record in page if self.where(record)]
            yield page
