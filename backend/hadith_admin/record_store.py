"""Full-collection record stores backed by SQLAlchemy.

The job processor reads a whole collection, mutates records in memory and
writes the collection back in one transaction. Each call opens its own
short-lived session so the stores can be shared by the scheduler thread and
request handlers.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Base, SessionLocal
from .errors import PersistenceError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
RecordT = TypeVar("RecordT", bound=BaseModel)


class SqlRecordStore(Generic[ModelT, RecordT]):
    """load_all / overwrite_all over one table, converting rows to pydantic records."""

    model: type[ModelT]
    record: type[RecordT]
    name: str = "records"

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def load_all(self) -> list[RecordT]:
        try:
            with self._session_factory() as db:
                rows = db.query(self.model).order_by(self.model.created_at.desc()).all()
                return self._to_records(rows)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load {self.name}: {e}") from e

    def overwrite_all(self, records: Sequence[RecordT]) -> None:
        """Write every record back in full, in a single transaction.

        Rows deleted since the collection was loaded are not recreated.
        """
        try:
            with self._session_factory() as db, db.begin():
                for record in records:
                    row = db.get(self.model, record.id)
                    if row is None:
                        logger.debug("%s %s deleted since load, not rewritten", self.name, record.id)
                        continue
                    for field, value in record.model_dump(exclude={"id"}).items():
                        setattr(row, field, value)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save {self.name}: {e}") from e

    def _to_records(self, rows: Sequence[ModelT]) -> list[RecordT]:
        records = []
        for row in rows:
            try:
                records.append(self.record.model_validate(row))
            except ValidationError as e:
                logger.warning("Skipping malformed %s row %s: %s", self.name, row.id, e)
        return records
