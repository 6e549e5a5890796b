"""Error types for the Uploads API and the handlers that turn them into HTTP responses."""

import logging
from contextlib import contextmanager
from typing import Iterator

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class UploadsApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(UploadsApiError):
    """The request itself is unusable, e.g. an upload without files."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(UploadsApiError):
    """No record for the identifier, or the record has no usable storage path."""

    status_code = status.HTTP_404_NOT_FOUND


class DependencyError(UploadsApiError):
    """Object storage, the metadata store or the event topic failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


@contextmanager
def dependency_errors(message: str) -> Iterator[None]:
    """
    Re-raise anything an external call throws as a ``DependencyError``.

    The original exception is logged with its traceback; callers only ever
    see ``message``.
    """
    try:
        yield
    except UploadsApiError:
        raise
    except Exception as e:
        logger.exception(f"{message}: {str(e)}")
        raise DependencyError(message) from e


async def handle_uploads_api_errors(request: Request, exc: UploadsApiError) -> JSONResponse:
    """Render domain errors as ``{"error": ...}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Invalid request",
            "detail": [
                {
                    "msg": error["msg"],
                    "loc": list(error.get("loc", ())),
                }
                for error in errors
            ],
        },
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
