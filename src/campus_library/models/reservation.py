"""
Reservation models for the Campus Library reservation service.

A reservation is a student's hold on one copy, created when a borrow request
is approved and consumed by checkout (fulfilled) or cancel (canceled). Expiry
is driven by an external job.

Allowed transitions::

    AWAITING -> FULFILLED
    AWAITING -> CANCELED
    AWAITING -> EXPIRED
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .catalog import BookCopySummary, BookSummary, StudentSummary
from .enums import ReservationStatus

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.AWAITING: frozenset(
        {ReservationStatus.FULFILLED, ReservationStatus.CANCELED, ReservationStatus.EXPIRED}
    ),
    ReservationStatus.FULFILLED: frozenset(),
    ReservationStatus.CANCELED: frozenset(),
    ReservationStatus.EXPIRED: frozenset(),
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    """Check whether a reservation may move from ``current`` to ``target``."""
    return target in ALLOWED_TRANSITIONS[current]


class Reservation(BaseModel):
    """A reservation row without its joined references."""

    id: str = Field(..., description="Unique identifier for the reservation")

    book_id: str = Field(..., description="Reserved book title")

    copy_id: str = Field(..., description="Physical copy held for the student")

    student_id: str = Field(..., description="Student who owns the reservation")

    request_id: str = Field(..., description="Borrow request the reservation came from")

    secret: str = Field(
        ...,
        description="Opaque token used to look the reservation up at the desk",
        min_length=6,
        max_length=64,
    )

    status: ReservationStatus = Field(
        default=ReservationStatus.AWAITING,
        description="Current lifecycle state",
    )

    index: int = Field(
        default=1,
        description="Tie-break ordinal; listings sort on it descending",
        ge=0,
        le=1,
    )

    created_at: datetime = Field(default_factory=datetime.now)

    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "reservation_5f2c9e1a7b3d",
                "book_id": "book_clrs",
                "copy_id": "copy_clrs_01",
                "student_id": "student_rahim",
                "request_id": "request_8a1f",
                "secret": "K7Q2XM9P",
                "status": "awaiting",
                "index": 1,
            }
        },
    )

    @property
    def is_open(self) -> bool:
        return self.status == ReservationStatus.AWAITING


class ReservationView(Reservation):
    """
    A reservation with its student, book and copy populated.

    ``student`` is left empty in a student's own listings.
    """

    student: StudentSummary | None = None

    book: BookSummary | None = None

    book_copy: BookCopySummary | None = Field(
        default=None,
        validation_alias="copy",
        serialization_alias="copy",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
