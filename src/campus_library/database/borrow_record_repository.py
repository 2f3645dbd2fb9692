"""
Borrow Record Store.

Records are inserted by checkout inside the reservation transaction. This
repository never updates or deletes them; that belongs to the return workflow.
"""

import logging
import uuid
from datetime import date

from sqlalchemy import desc, func, select

from ..models.borrow_record import BorrowRecord, ProcessedBy
from .repository import BaseRepository
from .schema import BorrowRecord as BorrowRecordDB
from .session import safe_query

logger = logging.getLogger(__name__)


class BorrowRecordRepository(BaseRepository[BorrowRecordDB]):
    """Creation and lookup of borrow records."""

    model_class = BorrowRecordDB

    def create(self, *, book_id: str, copy_id: str, student_id: str, due_date: date) -> BorrowRecord:
        """
        Insert an ongoing loan and flush it within the current transaction.

        Returns:
            The created record
        """
        record = BorrowRecordDB(
            id=self._generate_id(),
            book_id=book_id,
            copy_id=copy_id,
            student_id=student_id,
            due_date=due_date,
        )
        self.session.add(record)
        self.session.flush()
        self.session.refresh(record)
        logger.debug("Borrow record %s created for copy %s", record.id, copy_id)
        return self._to_model(record)

    def get(self, record_id: str) -> BorrowRecord | None:
        row = self.get_row(record_id)
        return self._to_model(row) if row is not None else None

    def list_for_student(self, student_id: str) -> list[BorrowRecord]:
        """All loans of a student, newest first."""
        query = (
            select(BorrowRecordDB)
            .where(BorrowRecordDB.student_id == student_id)
            .order_by(desc(BorrowRecordDB.index), desc(BorrowRecordDB.created_at))
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to list borrow records",
        )
        return [self._to_model(row) for row in rows]

    def count_for_copy(self, copy_id: str) -> int:
        query = select(func.count()).select_from(BorrowRecordDB).where(
            BorrowRecordDB.copy_id == copy_id
        )
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                "Failed to count borrow records",
            )
            or 0
        )

    def _generate_id(self) -> str:
        return f"borrow_{uuid.uuid4().hex[:12]}"

    def _to_model(self, row: BorrowRecordDB) -> BorrowRecord:
        """Convert borrow record DB object to Pydantic model."""
        processed_by = None
        if row.processed_by_id is not None:
            processed_by = ProcessedBy(staff_id=row.processed_by_id, at=row.processed_at)

        return BorrowRecord(
            id=row.id,
            book_id=row.book_id,
            copy_id=row.copy_id,
            student_id=row.student_id,
            due_date=row.due_date,
            return_date=row.return_date,
            return_condition=row.return_condition,
            is_overdue=row.is_overdue,
            overdue_days=row.overdue_days,
            fine_id=row.fine_id,
            review_id=row.review_id,
            status=row.status,
            processed_by=processed_by,
            index=row.index,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
