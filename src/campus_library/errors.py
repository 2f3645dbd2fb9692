"""
Error taxonomy for the Campus Library reservation service.

Every error that may cross the service boundary is a ``LibraryError`` and
carries an HTTP-style status code. The tool layer renders these with
``to_dict()`` into the uniform ``{"statusCode", "message"}`` shape; raw
SQLAlchemy or transaction errors never reach a client.
"""

from http import HTTPStatus


class LibraryError(Exception):
    """Base class for errors reported to callers."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, int | str]:
        return {"statusCode": int(self.status_code), "message": self.message}


class BadRequestError(LibraryError):
    """Raised when a filter, pagination or input value is invalid."""

    status_code = HTTPStatus.BAD_REQUEST


class ForbiddenTransitionError(LibraryError):
    """Raised when a reservation is not in a state that allows the operation."""

    status_code = HTTPStatus.FORBIDDEN


class NotFoundError(LibraryError):
    """Raised when an entity is absent or not owned by the requester."""

    status_code = HTTPStatus.NOT_FOUND


class TransactionFailedError(LibraryError):
    """Raised when a transactional operation was aborted and rolled back."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class StaleStateError(Exception):
    """A conditional write matched no rows.

    Internal only: the lifecycle manager converts it into a
    ``TransactionFailedError`` after rolling back.
    """
