"""
Repository base classes and pagination helpers.

Repositories wrap a SQLAlchemy session handed to them by a service; they never
commit. The service that opened the ``session_scope()`` owns the transaction,
so several repositories can write inside one atomic operation.
"""

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import BadRequestError
from .schema import Base
from .session import safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    limit: int = 10
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        """Calculate offset for SQL queries."""
        return (self.page - 1) * self.limit

    def validate_params(self, max_limit: int = 100) -> None:
        """Validate pagination parameters."""
        if self.page < 1:
            raise BadRequestError("Page must be >= 1")
        if self.limit < 1 or self.limit > max_limit:
            raise BadRequestError(f"Limit must be between 1 and {max_limit}")


class PageMeta(BaseModel):
    """Listing metadata: ``total_result`` matches the filter, ``total`` ignores it."""

    page: int
    limit: int
    total_result: int
    total: int


class Page(BaseModel, Generic[ResponseSchemaType]):
    """A page of results plus its metadata."""

    data: list[ResponseSchemaType]
    meta: PageMeta


class BaseRepository(Generic[ModelType]):
    """Common lookups shared by the store repositories."""

    model_class: type[ModelType]

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    def get_row(self, id: str, *options) -> ModelType | None:
        """Fetch one ORM row by primary key, applying loader options."""
        query = select(self.model_class).where(self.model_class.id == id)
        if options:
            query = query.options(*options)
        return safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )
