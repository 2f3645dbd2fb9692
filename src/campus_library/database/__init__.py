"""
Database package for the Campus Library reservation service.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and the transaction scope (session.py)
- One repository per store: copies, reservations, borrow records
"""

from .borrow_record_repository import BorrowRecordRepository
from .copy_repository import BookCopyRepository
from .repository import BaseRepository, Page, PageMeta, PaginationParams
from .request_repository import BorrowRequestRepository
from .reservation_repository import ReservationRepository
from .schema import (
    Base,
    Book,
    BookCopy,
    BorrowRecord,
    BorrowRequest,
    Reservation,
    Student,
)
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_query,
)

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookCopy",
    "BookCopyRepository",
    "BorrowRecord",
    "BorrowRecordRepository",
    "BorrowRequest",
    "BorrowRequestRepository",
    "DatabaseManager",
    "Page",
    "PageMeta",
    "PaginationParams",
    "Reservation",
    "ReservationRepository",
    "Student",
    "get_db_manager",
    "reset_db_manager",
    "safe_query",
]
