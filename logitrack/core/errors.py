from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    """Base for errors rendered as `{"error": message}` with `status_code`."""

    message: str
    status_code: int = 500

    def __str__(self) -> str:
        return self.message

    def to_body(self) -> dict:
        return {"error": self.message}


class Unauthenticated(ApiError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message=message, status_code=401)


class Forbidden(ApiError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message=message, status_code=403)


class NotFound(ApiError):
    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message=message, status_code=404)


class ValidationFailed(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=400)


class ServiceUnavailable(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=503)


class InternalError(ApiError):
    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message=message, status_code=500)
