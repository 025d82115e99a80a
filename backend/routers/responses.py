"""Translate domain errors into HTTP responses at the router boundary."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from core.errors import InvalidTransition, LifecycleError, NotFound, ValidationError
from core.flash import FLASH_ERROR, add_flash

_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidTransition: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
}


def status_code_for(exc: LifecycleError) -> int:
    for exc_type, code in _STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def lifecycle_error_response(request: Request, exc: LifecycleError) -> JSONResponse:
    # Returned rather than raised so the flash cookie survives.
    response = JSONResponse(status_code=status_code_for(exc), content={"detail": exc.message})
    if isinstance(exc, (ValidationError, InvalidTransition)):
        add_flash(request, response, FLASH_ERROR, exc.message)
    return response
