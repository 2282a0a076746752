"""
HTTP boundary helpers shared by the routers and the app factory.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from chatcrm.shared.exceptions import AppException, UnexpectedError
from chatcrm.shared.logging import get_logger

logger = get_logger(__name__)


def error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    """Render the single error shape ``{error, details?}``."""
    content: dict[str, Any] = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@contextmanager
def handler_boundary(failure_message: str, **context: Any) -> Iterator[None]:
    """Let application errors through and turn anything else into a logged 500.

    Args:
        failure_message: Generic message returned to the client.
        **context: Extra fields for the server-side log record.
    """
    try:
        yield
    except AppException:
        raise
    except Exception as e:
        logger.exception(failure_message, extra=context)
        raise UnexpectedError(failure_message) from e


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.details)


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", errors)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"endpoint": str(request.url.path), "method": request.method},
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
