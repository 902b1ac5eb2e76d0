import logging
import traceback

from fastapi import FastAPI, Request, status, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, NoResultFound, OperationalError

from app.core.errors import ServiceDeskError, AuthorizationError, InsufficientBalanceError

# SQLSTATE codes reported by PostgreSQL
PGCODE_UNIQUE_VIOLATION = "23505"
PGCODE_FOREIGN_KEY_VIOLATION = "23503"
PGCODE_CHECK_VIOLATION = "23514"
PGCODE_NOT_NULL_VIOLATION = "23502"

logger = logging.getLogger(__name__)


async def domain_exception_handler(request: Request, exc: Exception):
    """
    Maps the domain taxonomy (`app.core.errors`) to HTTP responses.
    """
    if not isinstance(exc, ServiceDeskError):
        return await generic_exception_handler(request, exc)

    log_message = f"{type(exc).__name__} - Status: {exc.status_code}, Detail: {exc.message}, Request: {request.method} {request.url}"
    if isinstance(exc, (AuthorizationError, InsufficientBalanceError)):
        logger.warning(log_message)
    else:
        logger.info(log_message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: Exception):
    """
    Request body/query validation errors raised by pydantic.
    """
    if not isinstance(exc, RequestValidationError):
        return await generic_exception_handler(request, exc)

    error_details = []
    for error in exc.errors():
        field_loc = error.get("loc", ["body"])
        if field_loc and field_loc[0] == 'body' and len(field_loc) > 1:
            field = " -> ".join(map(str, field_loc[1:]))
        else:
            field = " -> ".join(map(str, field_loc))
        message = error.get("msg", "Validation error")
        error_details.append({"field": field, "message": message})
    logger.warning(f"Request validation error: {request.method} {request.url} - Errors: {error_details}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Invalid input data.", "errors": error_details},
    )


async def http_exception_handler(request: Request, exc: Exception):
    """
    Explicit HTTPExceptions raised by routes and dependencies.
    """
    if not isinstance(exc, HTTPException):
        return await generic_exception_handler(request, exc)

    log_message = f"HTTPException - Status: {exc.status_code}, Detail: {exc.detail}, Request: {request.method} {request.url}"
    if exc.status_code >= 500:
        logger.error(log_message)
    elif exc.status_code >= 400:
        logger.warning(log_message)
    else:
        logger.info(log_message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: Exception):
    """
    SQLAlchemy errors. Unavailability of the database is reported as 503,
    integrity violations as 4xx, anything else as 500.
    """
    if not isinstance(exc, SQLAlchemyError):
        return await generic_exception_handler(request, exc)

    original_exc = getattr(exc, 'orig', None)
    pgcode = getattr(original_exc, 'sqlstate', None) or getattr(original_exc, 'pgcode', None)
    message = str(original_exc if original_exc else exc).lower()

    logger.error(
        f"Database error - Type: {type(original_exc).__name__ if original_exc else type(exc).__name__}, "
        f"PGCode: {pgcode}, Message: '{message}', Request: {request.method} {request.url}",
        exc_info=True
    )

    if isinstance(exc, OperationalError):
        user_message = "The database is temporarily unavailable. Please retry the operation."
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif pgcode == PGCODE_UNIQUE_VIOLATION or "unique constraint" in message:
        user_message = "Conflict: a record with the same unique values already exists."
        status_code = status.HTTP_409_CONFLICT
    elif pgcode == PGCODE_FOREIGN_KEY_VIOLATION or "foreign key constraint" in message:
        user_message = "Reference error: a linked record does not exist or is still referenced."
        status_code = status.HTTP_409_CONFLICT
    elif pgcode == PGCODE_CHECK_VIOLATION or "check constraint" in message:
        user_message = "The data violates a business rule."
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif pgcode == PGCODE_NOT_NULL_VIOLATION or "not null constraint" in message or "not-null constraint" in message:
        user_message = "A required field is missing."
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, IntegrityError):
        user_message = "Database integrity error. Check the submitted data."
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, NoResultFound):
        user_message = "The requested resource was not found."
        status_code = status.HTTP_404_NOT_FOUND
    else:
        user_message = "Internal server error while processing the database request."
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.info(f"Database error mapped to -> Status={status_code}, Detail='{user_message}'")
    return JSONResponse(status_code=status_code, content={"detail": user_message})


async def generic_exception_handler(request: Request, exc: Exception):
    """
    Anything not caught by a more specific handler.
    """
    logger.critical(
        f"Unhandled exception: {type(exc).__name__} - {exc}, Request: {request.method} {request.url}\n{traceback.format_exc()}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Unexpected internal error."},
    )


def register_error_handlers(app: FastAPI):
    """Registers every custom exception handler on the FastAPI app."""
    app.add_exception_handler(ServiceDeskError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.info("Custom error handlers registered.")
