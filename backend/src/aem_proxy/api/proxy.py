"""Lambda handler for the AEM persisted-query proxy.

Forwards a browser request to the destination named in the ``aem-url``
header after checking the caller origin and the destination against
their allow-lists, then relays the response with CORS headers.

Flow: validate request, check allow-lists, forward request, relay
response. ``OPTIONS`` requests are answered as CORS preflights without
contacting the destination.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping

from aem_proxy.config import ProxySettings
from aem_proxy.config import get_settings
from aem_proxy.exceptions import AllowListError
from aem_proxy.exceptions import AppError
from aem_proxy.exceptions import ValidationError
from aem_proxy.services.forwarder import build_destination_url
from aem_proxy.services.forwarder import fetch_content
from aem_proxy.utils.allowlist import check_in_allowlist
from aem_proxy.utils.logging import ContextLogger
from aem_proxy.utils.logging import clear_request_context
from aem_proxy.utils.logging import configure_logging
from aem_proxy.utils.logging import get_logger
from aem_proxy.utils.logging import log_response
from aem_proxy.utils.logging import set_request_context
from aem_proxy.utils.logging import string_parameters
from aem_proxy.utils.responses import ProxyResponse
from aem_proxy.utils.responses import error_response
from aem_proxy.utils.responses import preflight_response
from aem_proxy.utils.responses import success_response
from aem_proxy.utils.validators import check_missing_request_inputs
from aem_proxy.utils.validators import get_header
from aem_proxy.utils.validators import get_referer
from aem_proxy.utils.validators import parse_origin

# Configure logging on module load
configure_logging()

DESTINATION_HEADER = "aem-url"
CORRELATION_HEADER = "x-correlation-id"

REQUIRED_PARAMS: tuple[str, ...] = ()
REQUIRED_HEADERS: tuple[str, ...] = (DESTINATION_HEADER,)


@dataclass(frozen=True)
class ProxyRequest:
    """Inbound request extracted from an API Gateway event."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    request_id: str = ""

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> "ProxyRequest":
        """Build a request from a REST (v1) or HTTP API (v2) proxy event."""
        request_context = event.get("requestContext") or {}
        http_context = request_context.get("http") or {}

        method = event.get("httpMethod") or http_context.get("method") or "GET"

        path_parameters = event.get("pathParameters") or {}
        if path_parameters.get("proxy") is not None:
            path = "/" + str(path_parameters["proxy"]).lstrip("/")
        else:
            path = event.get("path") or event.get("rawPath") or ""

        headers = {
            str(key).lower(): str(value)
            for key, value in (event.get("headers") or {}).items()
            if value is not None
        }

        params: dict[str, Any] = dict(event.get("queryStringParameters") or {})
        params.update(_parse_body_params(event))

        return cls(
            method=str(method),
            path=path,
            headers=headers,
            params=params,
            request_id=str(request_context.get("requestId") or ""),
        )


def _parse_body_params(event: Mapping[str, Any]) -> dict[str, Any]:
    """Return the JSON object body as parameters, or an empty dict."""
    body = event.get("body")
    if not body:
        return {}
    try:
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8", errors="replace")
        payload = json.loads(body)
    except (ValueError, TypeError, RecursionError):
        # Non-JSON bodies carry no parameters
        return {}
    return payload if isinstance(payload, dict) else {}


def handle(
    request: ProxyRequest,
    settings: ProxySettings,
    log: ContextLogger,
) -> ProxyResponse:
    """Proxy a request and return the response or a structured error.

    Args:
        request: The inbound request.
        settings: Allow-lists and outbound request options.
        log: Logger scoped to this invocation.

    Returns:
        Preflight, success, 400 or 500 ProxyResponse.
    """
    try:
        return _proxy(request, settings, log)
    except AppError as exc:
        if exc.is_client_error:
            return error_response(
                exc.status_code, exc.message, log, detail=exc.detail
            )
        log.exception("Proxy request failed")
        return error_response(500, f"server error: {exc.message}", log)
    except Exception as exc:
        log.exception("Unexpected error in proxy")
        return error_response(500, f"server error: {exc}", log)


def _proxy(
    request: ProxyRequest,
    settings: ProxySettings,
    log: ContextLogger,
) -> ProxyResponse:
    log.info("Calling the proxy action")
    log.debug(
        string_parameters(request.method, request.path, request.headers, request.params)
    )

    origin, hostname = parse_origin(get_referer(request.headers))

    message = check_in_allowlist(settings.allowlist_origin, hostname)
    if message:
        raise AllowListError(hostname, message)

    if request.method.lower() == "options":
        return preflight_response(origin)

    message = check_missing_request_inputs(
        request.params, request.headers, REQUIRED_PARAMS, REQUIRED_HEADERS
    )
    if message:
        raise ValidationError(message)

    destination = get_header(request.headers, DESTINATION_HEADER) or ""

    message = check_in_allowlist(settings.allowlist_destination, destination)
    if message:
        raise AllowListError(destination, message)

    url = build_destination_url(destination, request.path)
    content = fetch_content(
        url,
        get_header(request.headers, "authorization"),
        log,
        timeout=settings.upstream_timeout,
    )

    response = success_response(origin, content)
    log.info(f"{response.status_code}: successful request")
    return response


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Handle an API Gateway request for the proxy."""
    start_time = time.perf_counter()
    log = get_logger(__name__)

    try:
        try:
            request = ProxyRequest.from_event(event)
        except Exception as exc:
            set_request_context(req_id=getattr(context, "aws_request_id", None))
            log.exception("Unreadable API Gateway event")
            response = error_response(500, f"server error: {exc}", log)
        else:
            set_request_context(
                req_id=request.request_id or getattr(context, "aws_request_id", None),
                corr_id=get_header(request.headers, CORRELATION_HEADER),
            )
            log = get_logger(__name__, method=request.method, path=request.path)
            response = _handle_with_settings(request, log)

        log_response(
            log,
            response.status_code,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        return response.to_api_gateway()
    finally:
        clear_request_context()


def _handle_with_settings(request: ProxyRequest, log: ContextLogger) -> ProxyResponse:
    try:
        settings = get_settings()
    except AppError as exc:
        return error_response(500, f"server error: {exc.message}", log)
    logging.getLogger("aem_proxy").setLevel(settings.log_level)
    return handle(request, settings, log)
