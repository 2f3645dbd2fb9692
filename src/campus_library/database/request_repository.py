"""Read access to borrow requests, which are owned by the approval workflow."""

from ..models.borrow_request import BorrowRequest
from .repository import BaseRepository
from .schema import BorrowRequest as BorrowRequestDB


class BorrowRequestRepository(BaseRepository[BorrowRequestDB]):
    model_class = BorrowRequestDB

    def get(self, request_id: str) -> BorrowRequest | None:
        row = self.get_row(request_id)
        return BorrowRequest.model_validate(row) if row is not None else None
