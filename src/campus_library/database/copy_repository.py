"""
Copy Availability Store.

Copy status is only ever changed through ``transition_status``, a single
``UPDATE ... WHERE`` statement. Callers may pass the statuses they expect the
copy to be in; if the row no longer matches, nothing is written and
``StaleStateError`` aborts the surrounding transaction.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import func, update

from ..errors import StaleStateError
from ..models.catalog import BookCopySummary
from ..models.enums import BookCopyStatus
from .repository import BaseRepository
from .schema import BookCopy as BookCopyDB

logger = logging.getLogger(__name__)


class BookCopyRepository(BaseRepository[BookCopyDB]):
    """Reads and conditional writes for book copies."""

    model_class = BookCopyDB

    def get(self, copy_id: str) -> BookCopySummary | None:
        row = self.get_row(copy_id)
        return BookCopySummary.model_validate(row) if row is not None else None

    def transition_status(
        self,
        copy_id: str,
        new_status: BookCopyStatus,
        expected: Iterable[BookCopyStatus] | None = None,
    ) -> None:
        """
        Set a copy's status in one conditional write.

        Args:
            copy_id: Copy to update
            new_status: Status to write
            expected: If given, only update while the copy is in one of these

        Raises:
            StaleStateError: If no row matched
        """
        expected = list(expected) if expected is not None else None
        stmt = (
            update(BookCopyDB)
            .where(BookCopyDB.id == copy_id)
            .values(status=new_status, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if expected is not None:
            stmt = stmt.where(BookCopyDB.status.in_(expected))

        result = self.session.execute(stmt)
        if result.rowcount == 0:
            wanted = [s.value for s in expected] if expected is not None else "any"
            raise StaleStateError(
                f"Copy {copy_id} not updated to {new_status.value} (expected one of {wanted})"
            )
        logger.debug("Copy %s -> %s", copy_id, new_status.value)
