"""
Campus Library models.

Pydantic models returned by the reservation service:
- Reservation / ReservationView: holds on a copy, optionally with joined references
- BorrowRecord: loans created at checkout
- Catalog summaries: students, books and copies embedded in listings
"""

from .borrow_record import BorrowRecord, ProcessedBy
from .borrow_request import BorrowRequest
from .catalog import BookCopySummary, BookSummary, StudentSummary
from .enums import BookCopyStatus, BorrowRecordStatus, BorrowRequestStatus, ReservationStatus
from .reservation import Reservation, ReservationView, can_transition

__all__ = [
    "BookCopyStatus",
    "BookCopySummary",
    "BookSummary",
    "BorrowRecord",
    "BorrowRecordStatus",
    "BorrowRequest",
    "BorrowRequestStatus",
    "ProcessedBy",
    "Reservation",
    "ReservationStatus",
    "ReservationView",
    "StudentSummary",
    "can_transition",
]
