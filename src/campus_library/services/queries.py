"""
Reservation query layer.

Filtered, paginated views over reservations for library staff and for the
requesting student. Filter and pagination values are validated before any
store access; invalid values raise ``BadRequestError``.
"""

import logging

from pydantic import BaseModel

from ..database.repository import Page, PageMeta, PaginationParams
from ..database.reservation_repository import SORTABLE_FIELDS, ReservationRepository
from ..database.session import DatabaseManager
from ..errors import BadRequestError, NotFoundError
from ..models.enums import ReservationStatus
from ..models.reservation import ReservationView

logger = logging.getLogger(__name__)


class StaffReservationFilters(BaseModel):
    """Raw staff filters; values are validated by the service."""

    roll: int | str | None = None
    secret: str | None = None
    status: str | None = None


class MyReservationFilters(BaseModel):
    status: str | None = None


def parse_status(value: str | None) -> ReservationStatus | None:
    if value is None or value == "":
        return None
    try:
        return ReservationStatus(value)
    except ValueError:
        raise BadRequestError("Invalid status") from None


def parse_roll(value: int | str | None) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise BadRequestError("Invalid roll number")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    # "12.0" and "1.2e1" name the integer 12; "12.5" names no roll
    try:
        number = float(text)
    except ValueError:
        raise BadRequestError("Invalid roll number") from None
    if not number.is_integer():
        raise BadRequestError("Invalid roll number")
    return int(number)


class ReservationQueryService:
    """Read-only reservation listings and lookups."""

    def __init__(self, db: DatabaseManager, max_page_size: int = 100):
        self.db = db
        self.max_page_size = max_page_size

    def list_for_staff(
        self,
        filters: StaffReservationFilters,
        pagination: PaginationParams,
    ) -> Page[ReservationView]:
        """
        List reservations for staff, joined with student, book and copy.

        A ``secret`` short-circuits to an exact single-record lookup; otherwise
        ``status`` and ``roll`` filters combine.
        """
        status = parse_status(filters.status)
        roll = parse_roll(filters.roll)
        self._check_pagination(pagination)

        with self.db.session_scope() as session:
            repo = ReservationRepository(session)
            total = repo.count()

            if filters.secret:
                reservation = repo.find_by_secret(filters.secret)
                data = [reservation] if reservation is not None else []
                total_result = len(data)
            else:
                data, total_result = repo.list_page(pagination, status=status, roll=roll)

        logger.debug("Staff listing returned %d of %d reservations", len(data), total_result)
        return Page[ReservationView](
            data=data,
            meta=PageMeta(
                page=pagination.page,
                limit=pagination.limit,
                total_result=total_result,
                total=total,
            ),
        )

    def list_mine(
        self,
        requester_id: str,
        filters: MyReservationFilters,
        pagination: PaginationParams,
    ) -> Page[ReservationView]:
        """List the requester's own reservations, joined with book and copy."""
        status = parse_status(filters.status)
        self._check_pagination(pagination)

        with self.db.session_scope() as session:
            repo = ReservationRepository(session)
            data, total_result = repo.list_page(
                pagination, student_id=requester_id, status=status, with_student=False
            )
            total = repo.count(student_id=requester_id)

        return Page[ReservationView](
            data=data,
            meta=PageMeta(
                page=pagination.page,
                limit=pagination.limit,
                total_result=total_result,
                total=total,
            ),
        )

    def get_by_id(self, reservation_id: str) -> ReservationView:
        with self.db.session_scope() as session:
            reservation = ReservationRepository(session).get_view(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    def get_mine_by_id(self, requester_id: str, reservation_id: str) -> ReservationView:
        with self.db.session_scope() as session:
            reservation = ReservationRepository(session).get_view(
                reservation_id, student_id=requester_id, with_student=False
            )
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    def _check_pagination(self, pagination: PaginationParams) -> None:
        pagination.validate_params(self.max_page_size)
        if pagination.sort_by not in SORTABLE_FIELDS:
            raise BadRequestError(f"Cannot sort reservations by '{pagination.sort_by}'")
