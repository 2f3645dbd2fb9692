"""
Reservation Store.

Besides plain lookups this repository provides the optimistic concurrency
gate used by the lifecycle manager: ``transition_status`` issues

    UPDATE reservations SET status = :new
    WHERE id = :id AND status = :expected

and raises ``StaleStateError`` when no row matched, so of two racing
transitions on the same reservation only the first one writes.
"""

import logging
import secrets
import uuid

from sqlalchemy import asc, desc, func, select, update
from sqlalchemy.orm import joinedload

from ..errors import StaleStateError
from ..models.catalog import BookCopySummary, BookSummary, StudentSummary
from ..models.enums import ReservationStatus
from ..models.reservation import Reservation, ReservationView
from .repository import BaseRepository, PaginationParams
from .schema import BorrowRequest as BorrowRequestDB
from .schema import Reservation as ReservationDB
from .schema import Student as StudentDB
from .session import safe_query

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": ReservationDB.created_at,
    "updated_at": ReservationDB.updated_at,
    "status": ReservationDB.status,
    "index": ReservationDB.index,
}


class ReservationRepository(BaseRepository[ReservationDB]):
    """Lookups, listings and conditional status writes for reservations."""

    model_class = ReservationDB

    # === Reads ===

    def get(self, reservation_id: str) -> Reservation | None:
        row = self.get_row(reservation_id)
        return Reservation.model_validate(row) if row is not None else None

    def get_owned(self, reservation_id: str, student_id: str) -> Reservation | None:
        """Fetch a reservation only if it belongs to ``student_id``."""
        query = select(ReservationDB).where(
            ReservationDB.id == reservation_id,
            ReservationDB.student_id == student_id,
        )
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get reservation",
        )
        return Reservation.model_validate(row) if row is not None else None

    def get_view(
        self,
        reservation_id: str,
        student_id: str | None = None,
        with_student: bool = True,
    ) -> ReservationView | None:
        """Fetch one reservation with its references populated."""
        query = (
            select(ReservationDB)
            .where(ReservationDB.id == reservation_id)
            .options(*self._loader_options(with_student))
        )
        if student_id is not None:
            query = query.where(ReservationDB.student_id == student_id)

        row = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to get reservation",
        )
        return self._to_view(row, with_student) if row is not None else None

    def find_by_secret(self, secret: str) -> ReservationView | None:
        query = (
            select(ReservationDB)
            .where(ReservationDB.secret == secret)
            .options(*self._loader_options(True))
        )
        row = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            "Failed to look up reservation by secret",
        )
        return self._to_view(row, True) if row is not None else None

    def get_request_duration(self, request_id: str) -> int | None:
        """Borrow duration in days recorded on the originating request."""
        query = select(BorrowRequestDB.borrow_for_days).where(BorrowRequestDB.id == request_id)
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get borrow request",
        )

    def list_page(
        self,
        pagination: PaginationParams,
        *,
        student_id: str | None = None,
        status: ReservationStatus | None = None,
        roll: int | None = None,
        with_student: bool = True,
    ) -> tuple[list[ReservationView], int]:
        """
        List reservations matching the filters.

        Rows are ordered by ``index`` descending, then by the requested sort
        field.

        Returns:
            Tuple of (page of reservations, number of rows matching the filters)
        """
        conditions = []
        if student_id is not None:
            conditions.append(ReservationDB.student_id == student_id)
        if status is not None:
            conditions.append(ReservationDB.status == status)

        query = select(ReservationDB)
        count_query = select(func.count()).select_from(ReservationDB)
        if roll is not None:
            query = query.join(StudentDB, ReservationDB.student_id == StudentDB.id)
            count_query = count_query.join(StudentDB, ReservationDB.student_id == StudentDB.id)
            conditions.append(StudentDB.roll == roll)

        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        sort_column = SORTABLE_FIELDS[pagination.sort_by]
        direction = desc if pagination.sort_order == "desc" else asc
        query = (
            query.order_by(desc(ReservationDB.index), direction(sort_column), asc(ReservationDB.id))
            .options(*self._loader_options(with_student))
            .offset(pagination.offset)
            .limit(pagination.limit)
        )

        total_result = (
            safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to count reservations",
            )
            or 0
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to list reservations",
        )
        return [self._to_view(row, with_student) for row in rows], total_result

    def count(self, student_id: str | None = None) -> int:
        query = select(func.count()).select_from(ReservationDB)
        if student_id is not None:
            query = query.where(ReservationDB.student_id == student_id)
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                "Failed to count reservations",
            )
            or 0
        )

    # === Writes ===

    def create(
        self,
        *,
        book_id: str,
        copy_id: str,
        student_id: str,
        request_id: str,
    ) -> Reservation:
        """Insert an awaiting reservation with a fresh secret."""
        row = ReservationDB(
            id=self._generate_id(),
            book_id=book_id,
            copy_id=copy_id,
            student_id=student_id,
            request_id=request_id,
            secret=self._generate_secret(),
            status=ReservationStatus.AWAITING,
        )
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)
        return Reservation.model_validate(row)

    def transition_status(
        self,
        reservation_id: str,
        expected: ReservationStatus,
        new_status: ReservationStatus,
    ) -> None:
        """
        Compare-and-swap the status of one reservation.

        Raises:
            StaleStateError: If the reservation is no longer in ``expected``
        """
        stmt = (
            update(ReservationDB)
            .where(ReservationDB.id == reservation_id, ReservationDB.status == expected)
            .values(status=new_status, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            raise StaleStateError(
                f"Reservation {reservation_id} is no longer {expected.value}; "
                f"refusing transition to {new_status.value}"
            )
        logger.debug("Reservation %s: %s -> %s", reservation_id, expected.value, new_status.value)

    # === Helpers ===

    def _loader_options(self, with_student: bool) -> list:
        options = [joinedload(ReservationDB.book), joinedload(ReservationDB.copy)]
        if with_student:
            options.append(joinedload(ReservationDB.student))
        return options

    def _to_view(self, row: ReservationDB, with_student: bool) -> ReservationView:
        """Convert reservation DB object to a populated Pydantic view."""
        return ReservationView(
            **Reservation.model_validate(row).model_dump(),
            student=StudentSummary.model_validate(row.student) if with_student else None,
            book=BookSummary.model_validate(row.book),
            book_copy=BookCopySummary.model_validate(row.copy),
        )

    def _generate_id(self) -> str:
        return f"reservation_{uuid.uuid4().hex[:12]}"

    def _generate_secret(self) -> str:
        return secrets.token_urlsafe(12)
