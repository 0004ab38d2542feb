from fastapi import HTTPException, status

from blogfeed.services.content import (
    CategoryNotFoundError,
    ContentConflictError,
    ContentError,
    ContentUnavailableError,
    ContentValidationError,
    CrossSourceMutationError,
    PostNotFoundError,
)
from blogfeed.services.notifications import NotificationNotFoundError

_STATUS_BY_ERROR: tuple[tuple[type[ContentError], int], ...] = (
    (ContentValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (PostNotFoundError, status.HTTP_404_NOT_FOUND),
    (CategoryNotFoundError, status.HTTP_404_NOT_FOUND),
    (NotificationNotFoundError, status.HTTP_404_NOT_FOUND),
    (CrossSourceMutationError, status.HTTP_409_CONFLICT),
    (ContentConflictError, status.HTTP_409_CONFLICT),
    (ContentUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: ContentError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
