"""Error kinds raised by services and translated to HTTP responses in app.main."""
from __future__ import annotations
import time


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class UpstreamError(ServiceError):
    """Non-2xx, transport or decode failure from a provider."""

    status_code = 502

    def __init__(self, service: str, status: int | None = None, message: str | None = None):
        self.service = service
        self.status = status
        if message is None:
            message = f"{service} API error: {status}" if status else f"{service} API error"
        super().__init__(message)


class ProviderNotConfigured(ServiceError):
    status_code = 502

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"{service} not configured")


class MisconfigurationError(ServiceError):
    status_code = 500

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"Server misconfiguration: {variable} missing")


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InvalidInputError(ServiceError):
    status_code = 400


class AuthError(ServiceError):
    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class EnvelopeError(Exception):
    """Failure on a unified endpoint, rendered with source tag and metadata."""

    def __init__(
        self,
        status_code: int,
        message: str,
        source: str = "",
        started: float | None = None,
        query: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.source = source
        self.started = started if started is not None else time.monotonic()
        self.query = query

    @classmethod
    def wrap(cls, exc: Exception, source: str, started: float, query: str = "") -> "EnvelopeError":
        status = getattr(exc, "status_code", 500)
        return cls(status, str(exc), source=source, started=started, query=query)
