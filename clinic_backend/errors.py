"""Error types and the JSON error envelope returned by the API.

Every failure leaves the API as ``{"error": {"code": ..., "message": ...}}``.
Domain code raises a :class:`ClinicError` subclass and the handlers
registered by :func:`register_exception_handlers` render it.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ClinicError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'INTERNAL_ERROR'
    default_message = 'Something went wrong.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailedError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'
    default_message = 'Invalid request.'


class UnauthorizedError(ClinicError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'UNAUTHORIZED'
    default_message = 'Access token required.'


class ForbiddenError(ClinicError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'FORBIDDEN'
    default_message = 'Insufficient permissions.'


class NotFoundError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'
    default_message = 'Route not found.'


class SlotNotFoundError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'SLOT_NOT_FOUND'
    default_message = 'Slot not found.'


class SlotTakenError(ClinicError):
    status_code = status.HTTP_409_CONFLICT
    code = 'SLOT_TAKEN'
    default_message = 'This slot is already booked.'


class SlotExpiredError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'SLOT_EXPIRED'
    default_message = 'Cannot book slots in the past.'


_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: 'VALIDATION_ERROR',
    status.HTTP_401_UNAUTHORIZED: 'UNAUTHORIZED',
    status.HTTP_403_FORBIDDEN: 'FORBIDDEN',
    status.HTTP_404_NOT_FOUND: 'NOT_FOUND',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'NOT_FOUND',
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={'error': {'code': code, 'message': message}},
    )


def describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationFailedError.default_message

    first = errors[0]
    location = [str(part) for part in first.get('loc', ()) if part not in ('body', 'query', 'path')]
    message = str(first.get('msg', 'Invalid value')).removeprefix('Value error, ')
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info('Rejected request to %s: %s', request.url.path, exc.errors())
    return error_response(status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR', describe_validation_error(exc))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = NotFoundError.default_message
    else:
        message = str(exc.detail)
    code = _STATUS_CODES.get(exc.status_code, 'INTERNAL_ERROR')
    return error_response(exc.status_code, code, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, 'INTERNAL_ERROR', ClinicError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClinicError, clinic_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
