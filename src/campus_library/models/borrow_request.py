"""Borrow request model: the approved request a reservation is created from."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import BorrowRequestStatus


class BorrowRequest(BaseModel):
    """A student's request to borrow a specific copy for a number of days."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    book_id: str
    copy_id: str
    borrow_for_days: int = Field(..., ge=1, description="Loan length granted on approval")
    status: BorrowRequestStatus = BorrowRequestStatus.PENDING
