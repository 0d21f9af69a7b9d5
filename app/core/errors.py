# app/core/errors.py
"""
Application error taxonomy.

Request handlers raise AppError (or let other exceptions bubble through
handle_controller_error); the exception handlers in app.main render every
error into the same {"status", "message"} body.
"""
import logging
from typing import Optional

log = logging.getLogger("whatsgroups.errors")


class AppError(Exception):
    """Error that knows its HTTP status code and machine-readable status"""

    def __init__(self, message: str, status_code: int = 500, status: str = "error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = status

    def to_dict(self) -> dict:
        return {"status": self.status, "message": self.message}

    def __repr__(self):
        return f"<AppError {self.status_code} {self.status}: {self.message}>"


def validation_error(message: str) -> AppError:
    return AppError(message, 400, "validation_error")


def unauthorized_error(message: str = "Not authorized") -> AppError:
    return AppError(message, 401, "unauthorized")


def not_found_error(resource: str = "Resource") -> AppError:
    return AppError(f"{resource} not found", 404, "not_found")


def conflict_error(message: str) -> AppError:
    return AppError(message, 409, "conflict")


def rate_limit_error(message: str) -> AppError:
    return AppError(message, 429, "rate_limited")


def handle_controller_error(error: Exception, default_message: str = "Failed to process request") -> AppError:
    """
    Convert any caught exception into an AppError.

    AppErrors pass through untouched; anything else (upstream failures,
    database errors) becomes a 500 carrying the contextual default message.
    """
    if isinstance(error, AppError):
        return error

    log.error(f"❌ {default_message}: {error}")
    return AppError(default_message or str(error), 500, "server_error")


class EvolutionAPIError(Exception):
    """Non-2xx response (or transport failure) from the Evolution API"""

    RATE_LIMIT_MARKER = "rate-overlimit"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.path = path
        self.body = body

    @property
    def is_rate_limited(self) -> bool:
        return self.RATE_LIMIT_MARKER in str(self)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or "Not Found" in str(self)
