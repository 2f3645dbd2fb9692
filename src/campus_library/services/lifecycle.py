"""
Reservation lifecycle manager.

Coordinates the three stores (reservations, book copies, borrow records)
when a reservation is placed, canceled or checked out. Every operation has
two phases:

1. A read phase that loads the reservation and reports NOT_FOUND or an
   illegal transition straight to the caller.
2. One transaction that performs all writes. The reservation status write
   goes first and is conditional on the reservation still being awaiting;
   if it, or any later write, affects no rows the whole transaction is rolled
   back and a generic internal error is raised. The underlying cause is
   logged, never returned.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import UTC, date, datetime, timedelta

from sqlalchemy.orm import Session

from ..database.borrow_record_repository import BorrowRecordRepository
from ..database.copy_repository import BookCopyRepository
from ..database.request_repository import BorrowRequestRepository
from ..database.reservation_repository import ReservationRepository
from ..database.session import DatabaseManager
from ..errors import (
    ForbiddenTransitionError,
    NotFoundError,
    StaleStateError,
    TransactionFailedError,
)
from ..models.borrow_record import BorrowRecord
from ..models.enums import BookCopyStatus, BorrowRequestStatus, ReservationStatus
from ..models.reservation import Reservation, can_transition

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ReservationLifecycleManager:
    """
    Stateless service object; construct once at startup with the store handles.

    Args:
        db: Database manager providing transactional sessions
        clock: Returns the current time; due dates use its UTC calendar date
    """

    def __init__(self, db: DatabaseManager, clock: Callable[[], datetime] = _utc_now):
        self.db = db
        self.clock = clock

    def today(self) -> date:
        """Current UTC date, time of day stripped."""
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(UTC)
        return now.date()

    # === Operations ===

    def cancel(self, requester_id: str, reservation_id: str) -> None:
        """
        Cancel an awaiting reservation and release its copy.

        Raises:
            NotFoundError: No reservation with this id belongs to the requester
            ForbiddenTransitionError: The reservation is not awaiting
            TransactionFailedError: A write failed; nothing was applied
        """
        reservation = self._load_owned(requester_id, reservation_id)

        if reservation.status == ReservationStatus.CANCELED:
            raise ForbiddenTransitionError("Reservation is already canceled")
        if not can_transition(reservation.status, ReservationStatus.CANCELED):
            raise ForbiddenTransitionError(
                f"Reservation can not be canceled because it is {reservation.status.value}"
            )

        with self._transaction("cancellation", reservation_id) as session:
            ReservationRepository(session).transition_status(
                reservation_id, ReservationStatus.AWAITING, ReservationStatus.CANCELED
            )
            BookCopyRepository(session).transition_status(
                reservation.copy_id, BookCopyStatus.AVAILABLE
            )

        logger.info("Reservation %s canceled by %s", reservation_id, requester_id)

    def checkout(self, requester_id: str, reservation_id: str) -> BorrowRecord:
        """
        Turn an awaiting reservation into a loan.

        In one transaction: reservation -> fulfilled, copy -> checked_out and
        a new borrow record due ``borrow_for_days`` after today.

        Returns:
            The created borrow record

        Raises:
            NotFoundError: No reservation with this id belongs to the requester
            ForbiddenTransitionError: The reservation is not awaiting
            TransactionFailedError: A write failed; nothing was applied
        """
        today = self.today()
        reservation = self._load_owned(requester_id, reservation_id)

        if not can_transition(reservation.status, ReservationStatus.FULFILLED):
            raise ForbiddenTransitionError(
                f"Reservation can not be checked out because it is {reservation.status.value}"
            )

        with self._transaction("checkout", reservation_id) as session:
            reservations = ReservationRepository(session)
            reservations.transition_status(
                reservation_id, ReservationStatus.AWAITING, ReservationStatus.FULFILLED
            )
            BookCopyRepository(session).transition_status(
                reservation.copy_id, BookCopyStatus.CHECKED_OUT
            )

            borrow_for_days = reservations.get_request_duration(reservation.request_id)
            if borrow_for_days is None:
                raise StaleStateError(
                    f"Borrow request {reservation.request_id} has no borrow duration"
                )

            record = BorrowRecordRepository(session).create(
                book_id=reservation.book_id,
                copy_id=reservation.copy_id,
                student_id=reservation.student_id,
                due_date=today + timedelta(days=borrow_for_days),
            )

        logger.info(
            "Reservation %s checked out by %s; due %s",
            reservation_id,
            requester_id,
            record.due_date.isoformat(),
        )
        return record

    def reserve(self, request_id: str) -> Reservation:
        """
        Place an awaiting reservation for an approved borrow request.

        The requested copy moves available -> reserved in the same
        transaction, so a copy is never held by two open reservations.

        Raises:
            NotFoundError: The borrow request does not exist
            ForbiddenTransitionError: The request is not approved or the copy is not available
            TransactionFailedError: A write failed; nothing was applied
        """
        with self.db.session_scope() as session:
            request = BorrowRequestRepository(session).get(request_id)
            if request is None:
                raise NotFoundError("Borrow request not found")
            copy = BookCopyRepository(session).get(request.copy_id)

        if request.status != BorrowRequestStatus.APPROVED:
            raise ForbiddenTransitionError(
                f"Borrow request is {request.status.value}, not approved"
            )
        if copy is None:
            raise NotFoundError("Book copy not found")
        if copy.status != BookCopyStatus.AVAILABLE:
            raise ForbiddenTransitionError(f"Book copy is {copy.status.value}, not available")

        with self._transaction("creation", request_id) as session:
            BookCopyRepository(session).transition_status(
                copy.id, BookCopyStatus.RESERVED, expected=[BookCopyStatus.AVAILABLE]
            )
            reservation = ReservationRepository(session).create(
                book_id=request.book_id,
                copy_id=request.copy_id,
                student_id=request.student_id,
                request_id=request.id,
            )

        logger.info("Reservation %s placed for request %s", reservation.id, request_id)
        return reservation

    # === Helpers ===

    def _load_owned(self, requester_id: str, reservation_id: str) -> Reservation:
        with self.db.session_scope() as session:
            reservation = ReservationRepository(session).get_owned(reservation_id, requester_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    @contextmanager
    def _transaction(self, action: str, subject_id: str) -> Generator[Session, None, None]:
        """One atomic write scope; any failure becomes a generic internal error."""
        try:
            with self.db.session_scope() as session:
                yield session
        except Exception as e:
            logger.exception("Reservation %s for %s aborted", action, subject_id)
            raise TransactionFailedError(
                f"Internal server error! Reservation {action} failed"
            ) from e
