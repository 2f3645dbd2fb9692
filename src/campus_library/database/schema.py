"""
SQLAlchemy database schema for the Campus Library reservation service.

Three tables carry the reservation lifecycle:

1. ``book_copies``: the Copy Availability Store
2. ``reservations``: the Reservation Store
3. ``borrow_records``: the Borrow Record Store

``students``, ``books`` and ``borrow_requests`` are owned by other workflows;
they exist here so reservations can be joined for listings and so checkout can
read the borrow duration of the originating request.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from ..models.enums import (
    BookCopyStatus,
    BorrowRecordStatus,
    BorrowRequestStatus,
    ReservationStatus,
    enum_values,
)

Base = declarative_base()


def _status_column(enum_cls, name: str, default):
    return Column(
        Enum(enum_cls, name=name, values_callable=enum_values, validate_strings=True),
        nullable=False,
        default=default,
    )


class Student(Base):
    """Students table - identities that own reservations and loans."""

    __tablename__ = "students"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    roll = Column(Integer, nullable=False, unique=True)
    email = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    reservations = relationship("Reservation", back_populates="student")

    __table_args__ = (Index("idx_student_roll", "roll"),)


class Book(Base):
    """Books table - one row per title."""

    __tablename__ = "books"

    id = Column(String(50), primary_key=True)
    name = Column(String(500), nullable=False, index=True)
    author = Column(String(200), nullable=True)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    copies = relationship("BookCopy", back_populates="book")


class BookCopy(Base):
    """
    Book copies table - the Copy Availability Store.

    Status changes go through conditional updates issued by the reservation
    lifecycle manager (and the return workflow), never by direct assignment.
    """

    __tablename__ = "book_copies"

    id = Column(String(50), primary_key=True)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    shelf_location = Column(String(100), nullable=True)
    status = _status_column(BookCopyStatus, "book_copy_status", BookCopyStatus.AVAILABLE)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book", back_populates="copies")

    __table_args__ = (
        Index("idx_copy_book", "book_id"),
        Index("idx_copy_status", "status"),
    )


class BorrowRequest(Base):
    """Borrow requests table - approved requests spawn reservations."""

    __tablename__ = "borrow_requests"

    id = Column(String(50), primary_key=True)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=False)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    copy_id = Column(String(50), ForeignKey("book_copies.id"), nullable=False)
    borrow_for_days = Column(Integer, nullable=False)
    status = _status_column(
        BorrowRequestStatus, "borrow_request_status", BorrowRequestStatus.PENDING
    )

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("borrow_for_days >= 1", name="check_borrow_for_days_positive"),
    )


class Reservation(Base):
    """
    Reservations table - the Reservation Store.

    A reservation is created awaiting and moves exactly once to fulfilled,
    canceled or expired. The ``secret`` is the opaque token staff use to look
    a reservation up at the desk.
    """

    __tablename__ = "reservations"

    id = Column(String(50), primary_key=True)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    copy_id = Column(String(50), ForeignKey("book_copies.id"), nullable=False)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=False)
    request_id = Column(String(50), ForeignKey("borrow_requests.id"), nullable=False)
    secret = Column(String(64), nullable=False, unique=True)
    status = _status_column(ReservationStatus, "reservation_status", ReservationStatus.AWAITING)
    index = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="reservations")
    book = relationship("Book")
    copy = relationship("BookCopy")
    request = relationship("BorrowRequest")

    __table_args__ = (
        Index("idx_reservation_student", "student_id"),
        Index("idx_reservation_status", "status"),
        Index("idx_reservation_copy", "copy_id"),
        CheckConstraint("\"index\" IN (0, 1)", name="check_reservation_index"),
    )


class BorrowRecord(Base):
    """
    Borrow records table - the Borrow Record Store.

    Rows are inserted by checkout in the same transaction that fulfills the
    reservation. Afterwards only the return workflow updates them; they are
    never deleted.
    """

    __tablename__ = "borrow_records"

    id = Column(String(50), primary_key=True)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    copy_id = Column(String(50), ForeignKey("book_copies.id"), nullable=False)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(DateTime, nullable=True)
    return_condition = _status_column(
        BorrowRecordStatus, "borrow_return_condition", BorrowRecordStatus.ONGOING
    )
    is_overdue = Column(Boolean, nullable=False, default=False)
    overdue_days = Column(Integer, nullable=True)
    fine_id = Column(String(50), nullable=True)
    review_id = Column(String(50), nullable=True)
    status = _status_column(BorrowRecordStatus, "borrow_record_status", BorrowRecordStatus.ONGOING)
    processed_by_id = Column(String(50), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    index = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book")
    copy = relationship("BookCopy")
    student = relationship("Student")

    __table_args__ = (
        Index("idx_borrow_student", "student_id"),
        Index("idx_borrow_due_date", "due_date"),
        CheckConstraint("overdue_days IS NULL OR overdue_days >= 1", name="check_overdue_days_min"),
        CheckConstraint(
            "overdue_days IS NULL OR is_overdue", name="check_overdue_days_needs_flag"
        ),
        CheckConstraint(
            "return_date IS NULL OR status != 'ongoing'", name="check_returned_not_ongoing"
        ),
        CheckConstraint(
            "(processed_by_id IS NULL) = (processed_at IS NULL)", name="check_processed_by_pair"
        ),
        CheckConstraint("\"index\" IN (0, 1)", name="check_borrow_index"),
    )
