"""Status enumerations shared by the database schema and the Pydantic models."""

from enum import Enum


class BookCopyStatus(str, Enum):
    """Availability of one physical copy."""

    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    RESERVED = "reserved"
    LOST = "lost"
    DAMAGED = "damaged"


class ReservationStatus(str, Enum):
    """Status of a reservation. Everything except AWAITING is final."""

    AWAITING = "awaiting"
    FULFILLED = "fulfilled"
    CANCELED = "canceled"
    EXPIRED = "expired"


class BorrowRequestStatus(str, Enum):
    """Status of a borrow request handled by the approval workflow."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BorrowRecordStatus(str, Enum):
    """Status of a loan; also used for the condition recorded at return."""

    ONGOING = "ongoing"
    RETURNED = "returned"
    DAMAGED = "damaged"
    LOST = "lost"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values (not member names) in the database."""
    return [member.value for member in enum_cls]
