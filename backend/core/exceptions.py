"""
Scheduling errors raised by the reservation engine.

Every error carries a stable ``code`` so the HTTP layer can report it
without string matching, and knows which status code it maps to.
"""

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class SchedulingError(Exception):
    """Base class for every error the scheduling core reports."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={"message": self.message, "code": self.code},
        )


class InvalidParty(SchedulingError):
    """A user id does not resolve, or the user does not hold the expected role."""

    status_code = HTTP_422_UNPROCESSABLE


class SlotUnavailable(SchedulingError):
    """The requested instant is not currently free for that professor."""

    status_code = status.HTTP_409_CONFLICT


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(SchedulingError):
    """Lost a race for the same slot. Retry with a fresh availability read."""

    status_code = status.HTTP_409_CONFLICT
    retryable = True


class TransientStoreFailure(SchedulingError):
    """The store timed out or was unreachable. Nothing was changed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
