"""Custom exception classes for the proxy.

This module provides domain-specific exception classes that carry
appropriate HTTP status codes and structured error information.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base exception for proxy errors.

    All proxy-specific exceptions should inherit from this class.
    Each exception carries an HTTP status code and optional details.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (default 500).
        detail: Optional additional context.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500


class ValidationError(AppError):
    """Raised when the inbound request is malformed.

    Use for a missing or unparseable referer, missing required
    headers or parameters.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        detail = f"Field: {field}" if field else None
        super().__init__(message, status_code=400, detail=detail)
        self.field = field


class AllowListError(ValidationError):
    """Raised when an origin or destination is not in its allow-list."""

    def __init__(self, candidate: str, message: str):
        super().__init__(message)
        self.candidate = candidate


class ConfigurationError(AppError):
    """Raised when configuration is missing or invalid.

    Use when environment variables are not properly configured.
    """

    def __init__(self, config_name: str, reason: Optional[str] = None):
        message = f"Invalid configuration: {config_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, status_code=500)
        self.config_name = config_name


class UpstreamError(AppError):
    """Raised when the destination answers with a non-success status.

    SECURITY: the message never includes the forwarded authorization
    value, since it is returned to the caller and logged.
    """

    def __init__(self, url: str, upstream_status: int):
        super().__init__(
            f"request to {url} failed with status code {upstream_status}",
            status_code=500,
        )
        self.url = url
        self.upstream_status = upstream_status
