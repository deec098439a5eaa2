from __future__ import annotations

import json


class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when the scheduling vendor fails or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class NetworkError(DownstreamServiceError):
    """Connectivity failure or timeout. Safe to retry by re-invoking the call."""

    def __init__(self, message: str = "Unable to reach the booking service", *, cause: Exception | None = None):
        super().__init__(message, status_code=None, cause=cause)


class HttpError(DownstreamServiceError):
    """The vendor answered with a non-200 status."""

    def __init__(self, status_code: int, body: str, *, cause: Exception | None = None):
        self.body = body
        self.message = extract_error_message(body)
        super().__init__(
            f"Server {status_code}: {self.message}", status_code=status_code, cause=cause
        )


class DecodingError(ServiceError):
    """The vendor response did not match the expected schema."""

    def __init__(self, detail: str, *, cause: Exception | None = None):
        super().__init__("Unexpected response from the booking service", cause=cause)
        self.detail = detail


class AuthError(ServiceError):
    """Authentication failed on every configured host."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        duplicate_field: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.duplicate_field = duplicate_field


def extract_error_message(body: str) -> str:
    """Pull the human-readable reason out of a vendor error body."""

    text = (body or "").strip()
    if not text:
        return "<empty>"
    try:
        payload = json.loads(text)
    except ValueError:
        return text
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        for key in ("Message", "message", "ExceptionMessage", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return text
