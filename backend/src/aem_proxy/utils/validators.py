"""Request input validation utilities."""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional
from typing import Sequence
from urllib.parse import urlparse

from aem_proxy.exceptions import ValidationError


def get_header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    """Get a header value case-insensitively.

    Args:
        headers: Request headers.
        name: Header name.

    Returns:
        The header value as a string, or None if not present.
    """
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target and value is not None:
            return str(value)
    return None


def get_referer(headers: Mapping[str, Any]) -> Optional[str]:
    """Return the caller's origin-identifying header.

    Browsers always send ``Origin`` on CORS requests; ``Referer`` is
    used when it is absent.
    """
    return get_header(headers, "origin") or get_header(headers, "referer")


def parse_origin(referer: Optional[str]) -> tuple[str, str]:
    """Parse the caller's referer into its origin and hostname.

    Args:
        referer: Value of the Origin/Referer header.

    Returns:
        Tuple of ``(origin, hostname)`` where origin is
        ``scheme://host[:port]``.

    Raises:
        ValidationError: If the referer is missing or not an absolute
            http(s) URL.
    """
    if not referer:
        raise ValidationError("missing referer", field="referer")

    try:
        parsed = urlparse(referer.strip())
        hostname = parsed.hostname
        port = parsed.port
    except ValueError as e:
        raise ValidationError(f"invalid referer: {referer}", field="referer") from e

    if parsed.scheme not in ("http", "https") or not hostname:
        raise ValidationError(f"invalid referer: {referer}", field="referer")

    # Userinfo is never echoed back
    host = f"[{hostname}]" if ":" in hostname else hostname
    origin = f"{parsed.scheme}://{host}"
    if port is not None:
        origin = f"{origin}:{port}"
    return origin, hostname


def _lookup(params: Mapping[str, Any], dotted_name: str) -> Any:
    value: Any = params
    for part in dotted_name.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def check_missing_request_inputs(
    params: Mapping[str, Any],
    headers: Mapping[str, Any],
    required_params: Sequence[str] = (),
    required_headers: Sequence[str] = (),
) -> Optional[str]:
    """Check that all required parameters and headers are present.

    Empty strings count as missing. Parameter names may be dotted to
    reach into nested objects (e.g. ``query.name``).

    Args:
        params: Request parameters (query string and JSON body).
        headers: Request headers.
        required_params: Parameter names that must be present.
        required_headers: Header names that must be present.

    Returns:
        A message naming every missing input, or None if all are present.
    """
    missing_headers = [
        name for name in required_headers if not get_header(headers, name)
    ]
    missing_params = [
        name for name in required_params if _lookup(params, name) in (None, "")
    ]

    messages: list[str] = []
    if missing_headers:
        names = ",".join(f"'{name}'" for name in missing_headers)
        messages.append(f"missing header(s) {names}")
    if missing_params:
        names = ",".join(f"'{name}'" for name in missing_params)
        messages.append(f"missing parameter(s) {names}")

    return " and ".join(messages) if messages else None
