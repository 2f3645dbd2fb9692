"""
Borrow record models for the Campus Library reservation service.

A borrow record is the loan created when a reservation is checked out. The
return workflow later fills in the return fields; records are never deleted.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import BorrowRecordStatus


class ProcessedBy(BaseModel):
    """Staff member who processed the return, and when."""

    staff_id: str
    at: datetime


class BorrowRecord(BaseModel):
    """
    Represents a live or completed loan.

    Invariants:
    - a return date moves the status out of ``ongoing``
    - ``overdue_days`` is only set when ``is_overdue`` is true
    """

    id: str = Field(..., description="Unique identifier for the borrow record")

    book_id: str

    copy_id: str

    student_id: str

    due_date: date = Field(..., description="Date the copy must be back")

    return_date: datetime | None = Field(
        default=None,
        description="Actual return time; None while the loan is open",
    )

    return_condition: BorrowRecordStatus = Field(
        default=BorrowRecordStatus.ONGOING,
        description="Condition recorded at return",
    )

    is_overdue: bool = False

    overdue_days: int | None = Field(default=None, ge=1)

    fine_id: str | None = None

    review_id: str | None = None

    status: BorrowRecordStatus = Field(default=BorrowRecordStatus.ONGOING)

    processed_by: ProcessedBy | None = None

    index: int = Field(default=1, ge=0, le=1)

    created_at: datetime = Field(default_factory=datetime.now)

    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "borrow_3e9d0c41aa27",
                "book_id": "book_clrs",
                "copy_id": "copy_clrs_01",
                "student_id": "student_rahim",
                "due_date": "2024-01-24",
                "return_date": None,
                "return_condition": "ongoing",
                "is_overdue": False,
                "status": "ongoing",
                "index": 1,
            }
        },
    )

    @model_validator(mode="after")
    def validate_return_state(self) -> "BorrowRecord":
        """Keep return fields consistent with the loan status."""
        if self.return_date is not None and self.status == BorrowRecordStatus.ONGOING:
            raise ValueError("A returned loan cannot be ongoing")

        if self.overdue_days is not None and not self.is_overdue:
            raise ValueError("overdue_days requires is_overdue")

        return self

    @property
    def is_open(self) -> bool:
        return self.return_date is None and self.status == BorrowRecordStatus.ONGOING

    @property
    def loan_period_days(self) -> int:
        """Days between creation and the due date."""
        return (self.due_date - self.created_at.date()).days
