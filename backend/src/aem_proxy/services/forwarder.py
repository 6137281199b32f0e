"""Outbound request forwarding to the destination.

Performs the single GET round trip of a proxied request with the
standard library HTTP client. Nothing is retried.
"""

from __future__ import annotations

import codecs
import json
import re
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any
from typing import Optional

from aem_proxy.exceptions import UpstreamError
from aem_proxy.utils.logging import ContextLogger
from aem_proxy.utils.logging import mask_pii

_HTML_CONTENT_TYPE = re.compile(r"html", re.IGNORECASE)


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw response from the destination."""

    status: int
    content_type: str
    body: bytes


def encode_persisted_query_path(path: str) -> str:
    """Percent-encode literal semicolons in a persisted-query path.

    Already encoded ``%3B`` sequences are left untouched.
    """
    return path.replace(";", "%3B")


def build_destination_url(destination: str, path: str) -> str:
    """Build the outbound URL from the destination base and inbound path.

    Args:
        destination: Value of the ``aem-url`` header.
        path: Inbound request path.

    Returns:
        The destination without trailing slashes followed by the encoded
        path.
    """
    return destination.rstrip("/") + encode_persisted_query_path(path)


def forward_request(
    url: str,
    authorization: Optional[str],
    timeout: Optional[float] = None,
) -> UpstreamResponse:
    """GET the destination URL, forwarding only the authorization header.

    Args:
        url: Outbound URL.
        authorization: Inbound ``authorization`` header value, if any.
        timeout: Optional socket timeout in seconds.

    Returns:
        The upstream response.

    Raises:
        UpstreamError: If the destination answers with a non-2xx status.
        urllib.error.URLError: On network failures.
    """
    headers: dict[str, str] = {}
    if authorization:
        headers["Authorization"] = authorization

    req = urllib.request.Request(url, headers=headers, method="GET")
    kwargs: dict[str, Any] = {}
    if timeout is not None:
        kwargs["timeout"] = timeout

    try:
        with urllib.request.urlopen(req, **kwargs) as resp:  # nosec B310 - destination is allow-listed
            status = resp.status
            content_type = resp.headers.get("Content-Type") or ""
            body = resp.read()
    except urllib.error.HTTPError as exc:
        exc.close()
        raise UpstreamError(url, exc.code) from exc

    if not 200 <= status < 300:
        raise UpstreamError(url, status)

    return UpstreamResponse(status=status, content_type=content_type, body=body)


def is_html(content_type: str) -> bool:
    return bool(_HTML_CONTENT_TYPE.search(content_type or ""))


def _is_known_charset(charset: str) -> bool:
    try:
        codecs.lookup(charset)
    except LookupError:
        return False
    return True


def parse_content(response: UpstreamResponse) -> Any:
    """Decode an upstream body.

    HTML-like content types are returned as text; anything else is
    parsed as JSON.

    Raises:
        ValueError: If a non-HTML body is not valid JSON.
    """
    charset = "utf-8"
    match = re.search(r"charset=([\w-]+)", response.content_type, re.IGNORECASE)
    if match and _is_known_charset(match.group(1)):
        charset = match.group(1)

    text = response.body.decode(charset, errors="replace")
    if is_html(response.content_type):
        return text
    return json.loads(text)


def fetch_content(
    url: str,
    authorization: Optional[str],
    logger: ContextLogger,
    timeout: Optional[float] = None,
) -> Any:
    """Forward a request and return the decoded upstream content."""
    response = forward_request(url, authorization, timeout=timeout)
    logger.debug(
        f"Upstream responded {response.status}",
        extra={
            "context": {
                "url": url,
                "content_type": response.content_type,
                "authorization": mask_pii(authorization) if authorization else None,
            }
        },
    )
    return parse_content(response)
