"""Lambda entrypoint for the AEM persisted-query proxy.

Deployed behind an API Gateway ``/{proxy+}`` resource; the proxied path
is forwarded to the destination named in the ``aem-url`` header.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from aem_proxy.api.proxy import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the proxy handler."""
    return _handler(event, context)
