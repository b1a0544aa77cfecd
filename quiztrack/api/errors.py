"""
HTTP error mapping.

Only malformed input produces a 4xx; store trouble is reported inside
200 responses by the components themselves.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quiztrack.core.errors import RateLimitError, ValidationError

logger = logging.getLogger(__name__)


def _describe(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _describe(exc)})


async def rate_limit_error_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    logger.warning("Rate limited request to %s", request.url.path)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": (
                f"Rate limit exceeded: max {exc.max_events} events "
                f"per {exc.window_seconds} seconds"
            ),
        },
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_error_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(RateLimitError, rate_limit_error_handler)  # type: ignore[arg-type]
