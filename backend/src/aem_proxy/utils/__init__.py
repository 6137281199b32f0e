"""Utility modules for the proxy."""

from aem_proxy.utils.allowlist import (
    check_in_allowlist,
    is_allowed,
    normalize_patterns,
)
from aem_proxy.utils.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    mask_pii,
    set_request_context,
    string_parameters,
)
from aem_proxy.utils.responses import (
    ProxyResponse,
    error_response,
)
from aem_proxy.utils.validators import (
    check_missing_request_inputs,
    get_header,
    get_referer,
    parse_origin,
)

__all__ = [
    "ProxyResponse",
    "check_in_allowlist",
    "check_missing_request_inputs",
    "clear_request_context",
    "configure_logging",
    "error_response",
    "get_header",
    "get_logger",
    "get_referer",
    "is_allowed",
    "mask_pii",
    "normalize_patterns",
    "parse_origin",
    "set_request_context",
    "string_parameters",
]
