"""Exception hierarchy shared by the resolvers and engines, plus FastAPI handlers.

Whole-call failures surface as one of these kinds so the HTTP layer can render
a specific message. Per-source failures inside a fan-out never reach here; they
are logged and collapsed to an empty result at the source boundary.
"""

import logging
from datetime import date
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class WeatherbirdError(Exception):
    """Base for every error the core raises on purpose."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class ProviderUnavailable(WeatherbirdError):
    """A specific provider failed, timed out or returned an unusable payload."""

    status_code = 502
    error_code = "PROVIDER_UNAVAILABLE"

    def __init__(self, provider: str, reason: str = ""):
        super().__init__(f"Provider '{provider}' unavailable: {reason}", provider=provider)
        self.provider = provider
        self.reason = reason


class NoProviderAvailable(WeatherbirdError):
    """Every provider in a fallback chain failed."""

    status_code = 503
    error_code = "NO_PROVIDER_AVAILABLE"

    def __init__(self, attempts: dict[str, str]):
        summary = "; ".join(f"{name}: {reason}" for name, reason in attempts.items())
        super().__init__(f"All weather providers failed. {summary}", attempts=attempts)
        self.attempts = attempts


class ForecastUnavailable(WeatherbirdError):
    """No forecast could be obtained for the requested day."""

    status_code = 503
    error_code = "FORECAST_UNAVAILABLE"

    def __init__(self, target_date: date | None, reason: str = ""):
        day = target_date.isoformat() if target_date else "any requested day"
        super().__init__(
            f"Weather forecast unavailable for {day}: {reason}",
            target_date=target_date.isoformat() if target_date else None,
        )
        self.target_date = target_date


class InvalidInput(WeatherbirdError):
    """Malformed identifier, missing required field or bad coordinates."""

    status_code = 422
    error_code = "INVALID_INPUT"

    def __init__(self, message: str, **details: Any):
        super().__init__(message, **details)


def register_error_handlers(app: FastAPI) -> None:
    """Render WeatherbirdError subclasses as a consistent JSON error body."""

    @app.exception_handler(WeatherbirdError)
    async def handle_weatherbird_error(request: Request, exc: WeatherbirdError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log("%s on %s: %s", exc.error_code, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.error_code,
                    "message": exc.message,
                    "status": exc.status_code,
                    "details": exc.details,
                }
            },
        )
