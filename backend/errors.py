"""Application errors and their HTTP rendering."""

import builtins
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

from log_setup import LOGGER_NAME


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class InvalidTimezoneError(ValidationError):
    code = "invalid_timezone"


class UnsupportedFrequencyError(AppError, ValueError):
    code = "unsupported_frequency"
    status_code = 422


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class PermissionDeniedError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


def _error_payload(code: str, message: str) -> dict:
    return {
        "error": {"code": code, "message": message},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    logger = logging.getLogger(LOGGER_NAME)
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"error_code": exc.code, "error_message": exc.message, "status": exc.status_code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.code, exc.message))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
