"""
Catalog-side models embedded in reservation listings.

Students, books and copies are owned by other parts of the library system;
only the fields a reservation listing shows are modelled here.
"""

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookCopyStatus


class StudentSummary(BaseModel):
    """A student as shown next to a reservation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    roll: int = Field(..., description="Institution roll number", ge=0)
    email: str | None = None


class BookSummary(BaseModel):
    """A book title as shown next to a reservation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    author: str | None = None


class BookCopySummary(BaseModel):
    """One physical copy and its current availability."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=False)

    id: str
    book_id: str
    shelf_location: str | None = None
    status: BookCopyStatus = BookCopyStatus.AVAILABLE

    @property
    def is_available(self) -> bool:
        return self.status == BookCopyStatus.AVAILABLE
