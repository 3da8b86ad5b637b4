from fastapi import HTTPException, status

from ..domain.errors import ErrorKind, Failure

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.NO_CAPACITY: status.HTTP_409_CONFLICT,
    ErrorKind.OUTSIDE_SERVICE_WINDOW: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def to_http_exception(failure: Failure) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_KIND[failure.kind],
        detail={"error": failure.kind.value, "message": failure.message},
    )
