from fastapi import HTTPException

from app.application.exceptions import (
    BookingError,
    BookingNotFound,
    ConflictError,
    FetchError,
    IllegalTransition,
    PropertyNotFound,
    Unauthorized,
)


def to_http_error(error: BookingError) -> HTTPException:
    if isinstance(error, Unauthorized):
        return HTTPException(status_code=403, detail={"code": "unauthorized", "message": str(error)})
    if isinstance(error, (BookingNotFound, PropertyNotFound)):
        return HTTPException(status_code=404, detail={"code": "not_found", "message": str(error)})
    if isinstance(error, IllegalTransition):
        return HTTPException(status_code=409, detail={"code": "illegal_transition", "message": str(error)})
    if isinstance(error, ConflictError):
        # The client must re-fetch and re-present options, not repeat the request.
        return HTTPException(status_code=409, detail={"code": "conflict", "message": str(error)})
    if isinstance(error, FetchError):
        return HTTPException(status_code=503, detail={"code": "unavailable", "message": str(error)})
    return HTTPException(status_code=500, detail={"code": "booking_error", "message": str(error)})
