"""Errors raised by the API client."""

from typing import Any


class ClientError(Exception):
    """Base class for API client failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NetworkError(ClientError):
    """The request never got a response (connection, timeout, protocol)."""


class ApiError(ClientError):
    """The server answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.code = code

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class AuthenticationError(ApiError):
    """Missing, invalid or expired session."""


class NotFoundError(ApiError):
    """The addressed record does not exist."""


class ValidationError(ApiError):
    """The server rejected the payload (bad field or duplicate)."""
