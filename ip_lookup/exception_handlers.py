from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ip_lookup.errors import AppError
from ip_lookup.logger import logger


def error_response(message: str, code: int, headers: dict[str, str] | None = None) -> JSONResponse:
    """Build the `{"message", "code"}` body used by every error response."""
    return JSONResponse(status_code=code, content={"message": message, "code": code}, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors with the status code carried by the exception."""
    logger.info(
        f"Request failed with {type(exc).__name__} "
        f"path={request.url.path} method={request.method} status={exc.status_code} error={exc.message}"
    )
    return error_response(exc.message, int(exc.status_code))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (unknown path, wrong method) use the same error body."""
    return error_response(str(exc.detail), exc.status_code, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    logger.exception(
        f"Unhandled exception while processing request: {exc!r} path={request.url.path} method={request.method}"
    )
    return error_response(
        "An unexpected error occurred while processing the request.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
