from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class ApiError(Exception):
    """Error rendered to the client as `{"error": message, **extra}`."""

    def __init__(
        self,
        status_code: int,
        message: str,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.extra = extra or {}
        self.headers = headers


class ServerError(ApiError):
    def __init__(self) -> None:
        super().__init__(500, "Internal server error")


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Request validation failed path={} errors={}", request.url.path, len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})
