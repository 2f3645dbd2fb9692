"""Test configuration and fixtures for the Campus Library reservation service.

1. Isolated databases - each test gets a fresh in-memory SQLite database
2. Configuration overrides - settings built per test, global state reset after
3. Seed data - students, a book with copies, and a reservation factory
4. A fixed clock so due dates are predictable
"""

import os
import uuid
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from campus_library.config import LibrarySettings, reset_config
from campus_library.database.schema import (
    Book,
    BookCopy,
    BorrowRecord,
    BorrowRequest,
    Reservation,
    Student,
)
from campus_library.database.session import DatabaseManager, reset_db_manager
from campus_library.models.enums import (
    BookCopyStatus,
    BorrowRequestStatus,
    ReservationStatus,
)
from campus_library.services import ReservationLifecycleManager, ReservationQueryService
from campus_library.tools.reservations import reset_services

STUDENT_ID = "student_rahim"
STUDENT_ROLL = 1001
OTHER_STUDENT_ID = "student_nadia"
OTHER_STUDENT_ROLL = 1002
BOOK_ID = "book_clrs"

FIXED_NOW = datetime(2024, 1, 10, 15, 45, tzinfo=UTC)


# === Database Fixtures ===


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """In-memory database; StaticPool keeps it alive across sessions."""
    manager = DatabaseManager("sqlite://")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def file_db_manager(tmp_path: Path) -> Generator[DatabaseManager, None, None]:
    """File-backed database; every session gets its own connection."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'library.db'}")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def db_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """A session for arranging and inspecting rows directly."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def library(db_session: Session) -> dict:
    """Two students and one book with four available copies."""
    db_session.add_all(
        [
            Student(id=STUDENT_ID, name="Rahim Uddin", roll=STUDENT_ROLL, email="rahim@example.edu"),
            Student(id=OTHER_STUDENT_ID, name="Nadia Islam", roll=OTHER_STUDENT_ROLL),
            Book(id=BOOK_ID, name="Introduction to Algorithms", author="Cormen et al."),
        ]
    )
    db_session.flush()
    copies = [f"copy_clrs_{n:02d}" for n in range(1, 5)]
    db_session.add_all([BookCopy(id=copy_id, book_id=BOOK_ID) for copy_id in copies])
    db_session.commit()
    return {"students": [STUDENT_ID, OTHER_STUDENT_ID], "book": BOOK_ID, "copies": copies}


@pytest.fixture
def make_reservation(db_session: Session, library: dict):
    """
    Factory inserting an approved borrow request and a reservation for it.

    The copy is marked reserved while the reservation is awaiting.
    """

    def _make(
        copy_id: str | None = None,
        student_id: str = STUDENT_ID,
        status: ReservationStatus = ReservationStatus.AWAITING,
        borrow_for_days: int = 14,
        index: int = 1,
        created_at: datetime | None = None,
        secret: str | None = None,
    ) -> Reservation:
        copy_id = copy_id or library["copies"][0]
        request = BorrowRequest(
            id=f"request_{uuid.uuid4().hex[:8]}",
            student_id=student_id,
            book_id=BOOK_ID,
            copy_id=copy_id,
            borrow_for_days=borrow_for_days,
            status=BorrowRequestStatus.APPROVED,
        )
        db_session.add(request)
        db_session.flush()

        reservation = Reservation(
            id=f"reservation_{uuid.uuid4().hex[:12]}",
            book_id=BOOK_ID,
            copy_id=copy_id,
            student_id=student_id,
            request_id=request.id,
            secret=secret or uuid.uuid4().hex[:10].upper(),
            status=status,
            index=index,
        )
        if created_at is not None:
            reservation.created_at = created_at
        db_session.add(reservation)

        if status == ReservationStatus.AWAITING:
            db_session.get(BookCopy, copy_id).status = BookCopyStatus.RESERVED
        db_session.commit()
        return reservation

    return _make


@pytest.fixture
def approved_request(db_session: Session, library: dict) -> BorrowRequest:
    request = BorrowRequest(
        id="request_approved01",
        student_id=STUDENT_ID,
        book_id=BOOK_ID,
        copy_id=library["copies"][1],
        borrow_for_days=7,
        status=BorrowRequestStatus.APPROVED,
    )
    db_session.add(request)
    db_session.commit()
    return request


# === Service Fixtures ===


@pytest.fixture
def lifecycle(db_manager: DatabaseManager) -> ReservationLifecycleManager:
    return ReservationLifecycleManager(db_manager, clock=lambda: FIXED_NOW)


@pytest.fixture
def queries(db_manager: DatabaseManager) -> ReservationQueryService:
    return ReservationQueryService(db_manager)


# === Inspection Helpers ===


@pytest.fixture
def inspect_db(db_manager: DatabaseManager):
    """Read current rows through a fresh session, bypassing any identity map."""

    class _Inspector:
        def reservation_status(self, reservation_id: str) -> ReservationStatus:
            with db_manager.session_scope() as session:
                return session.get(Reservation, reservation_id).status

        def copy_status(self, copy_id: str) -> BookCopyStatus:
            with db_manager.session_scope() as session:
                return session.get(BookCopy, copy_id).status

        def borrow_records(self) -> list[BorrowRecord]:
            with db_manager.session_scope() as session:
                return session.query(BorrowRecord).all()

    return _Inspector()


# === Configuration Fixtures ===


@pytest.fixture
def test_config(tmp_path: Path) -> Generator[LibrarySettings, None, None]:
    reset_config()
    config = LibrarySettings(
        server_name="test-campus-library",
        server_version="0.0.1-test",
        database_path=tmp_path / "test_library.db",
        debug=True,
        log_level="DEBUG",
    )
    yield config
    reset_config()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without CAMPUS_LIBRARY_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("CAMPUS_LIBRARY_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset process-wide singletons so tests don't interfere with each other."""
    yield

    reset_config()
    reset_services()
    reset_db_manager()
