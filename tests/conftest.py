"""Pytest configuration and fixtures for proxy tests.

This module provides shared fixtures for testing the proxy handler,
including API Gateway events, settings and a stubbed HTTP client.
"""

from __future__ import annotations

import sys
from email.message import Message
from pathlib import Path
from typing import Iterator
from uuid import uuid4

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))


class FakeUpstreamResponse:
    """Stand-in for the object returned by ``urllib.request.urlopen``."""

    def __init__(
        self,
        body: bytes = b'',
        content_type: str | None = 'application/json',
        status: int = 200,
    ) -> None:
        self.status = status
        self.headers = Message()
        if content_type is not None:
            self.headers['Content-Type'] = content_type
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> 'FakeUpstreamResponse':
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


# --- Settings Fixtures ---


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch) -> Iterator[None]:
    """Start every test with an empty environment and no cached settings."""
    from aem_proxy.config import clear_settings_cache

    for name in (
        'ALLOWLIST_ORIGIN',
        'ALLOWLIST_DESTINATION',
        'LOG_LEVEL',
        'UPSTREAM_TIMEOUT_SECONDS',
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def proxy_settings():
    """Settings with a trusted origin and a single AEM publish destination."""
    from aem_proxy.config import ProxySettings

    return ProxySettings(
        allowlist_origin=['trusted.example', 'localhost'],
        allowlist_destination=['https://publish.aem.example/*'],
    )


@pytest.fixture
def proxy_logger():
    """Invocation logger."""
    from aem_proxy.utils.logging import get_logger

    return get_logger('tests.proxy')


# --- API Event Fixtures ---


@pytest.fixture
def api_gateway_event() -> dict:
    """API Gateway event for a persisted query request."""
    return {
        'httpMethod': 'GET',
        'path': '/graphql/execute.json/site/articles;locale=en',
        'pathParameters': None,
        'queryStringParameters': None,
        'headers': {
            'Origin': 'https://trusted.example',
            'Authorization': 'Bearer secret-token',
            'aem-url': 'https://publish.aem.example/',
        },
        'requestContext': {
            'requestId': str(uuid4()),
        },
        'body': None,
        'isBase64Encoded': False,
    }


# --- Mock Fixtures ---


@pytest.fixture
def upstream_response():
    """Factory for fake upstream responses."""
    return FakeUpstreamResponse


@pytest.fixture
def mock_urlopen(mocker):
    """Mock the outbound HTTP client with a JSON response."""
    return mocker.patch(
        'urllib.request.urlopen',
        return_value=FakeUpstreamResponse(b'{"a": 1}'),
    )
