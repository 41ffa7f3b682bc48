"""
Mapping of domain failures to HTTP errors
"""
from fastapi import HTTPException, status
from typing import TypeVar, Union

from ..domain.errors import ErrorKind, Failure

T = TypeVar("T")

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
}


def failure_to_http(failure: Failure) -> HTTPException:
    """Build the HTTPException for a failure"""
    return HTTPException(
        status_code=STATUS_BY_KIND[failure.kind],
        detail={"code": failure.reason, "message": failure.message},
    )


def unwrap(result: Union[T, Failure]) -> T:
    """Return a successful result or raise its HTTP error"""
    if isinstance(result, Failure):
        raise failure_to_http(result)
    return result
