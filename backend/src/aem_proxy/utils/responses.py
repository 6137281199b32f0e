"""Shared response utilities for the proxy Lambda."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Optional

from aem_proxy.utils.logging import ContextLogger

PREFLIGHT_ALLOW_HEADERS = "Authorization, content-type, aem-url"

TIMESTAMP_HEADER = "X-Proxy-Timestamp"


@dataclass
class ProxyResponse:
    """Response produced by the proxy handler.

    ``body`` is None (no body), text, or parsed JSON data.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def to_api_gateway(self) -> dict[str, Any]:
        """Convert to an API Gateway proxy integration response."""
        if self.body is None:
            body = ""
        elif isinstance(self.body, str):
            body = self.body
        else:
            body = json.dumps(self.body, default=str)
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": body,
        }


def get_security_headers() -> dict[str, str]:
    """Get security headers for all responses.

    SECURITY: These headers protect against common web vulnerabilities:
    - X-Content-Type-Options: Prevents MIME type sniffing
    - Cache-Control: Prevents caching of proxied content by intermediaries

    Returns:
        Dictionary of security headers.
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "Cache-Control": "no-store",
    }


def get_cors_headers(origin: str, preflight: bool = False) -> dict[str, str]:
    """Get CORS headers echoing the caller's origin.

    Args:
        origin: The caller origin (``scheme://host[:port]``) that passed
            the origin allow-list.
        preflight: Whether to include the preflight allow-headers list.

    Returns:
        Dictionary of CORS headers to include in the response.
    """
    headers = {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
    }
    if preflight:
        headers["Access-Control-Allow-Headers"] = PREFLIGHT_ALLOW_HEADERS
    return headers


def preflight_response(origin: str) -> ProxyResponse:
    """Create the response to a CORS preflight request."""
    return ProxyResponse(200, get_cors_headers(origin, preflight=True))


def success_response(origin: str, content: Any) -> ProxyResponse:
    """Create a successful proxy response.

    Args:
        origin: The caller origin to echo in CORS headers.
        content: Upstream body, text or parsed JSON.

    Returns:
        ProxyResponse with CORS and diagnostic headers.
    """
    content_type = (
        "text/html; charset=utf-8" if isinstance(content, str) else "application/json"
    )
    headers = {"Content-Type": content_type}
    headers.update(get_security_headers())
    headers.update(get_cors_headers(origin))
    headers[TIMESTAMP_HEADER] = str(int(time.time() * 1000))
    return ProxyResponse(200, headers, content)


def error_response(
    status_code: int,
    message: str,
    logger: ContextLogger,
    detail: Optional[str] = None,
) -> ProxyResponse:
    """Log an error and create the matching failure response.

    Args:
        status_code: HTTP status code.
        message: Error message returned to the caller.
        logger: Invocation logger.
        detail: Optional additional detail.

    Returns:
        ProxyResponse with a structured error body.
    """
    logger.error(f"{status_code}: {message}")

    body: dict[str, Any] = {"error": message}
    if detail:
        body["detail"] = detail

    headers = {"Content-Type": "application/json"}
    headers.update(get_security_headers())
    return ProxyResponse(status_code, headers, body)
