"""Tests for outbound request forwarding."""

from __future__ import annotations

import io
import sys
import urllib.error
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from aem_proxy.exceptions import UpstreamError
from aem_proxy.services.forwarder import (
    UpstreamResponse,
    build_destination_url,
    encode_persisted_query_path,
    fetch_content,
    forward_request,
    is_html,
    parse_content,
)


class TestBuildDestinationUrl:
    """Tests for build_destination_url function."""

    def test_strips_trailing_slashes(self) -> None:
        url = build_destination_url('https://publish.aem.example///', '/graphql/execute.json/a')
        assert url == 'https://publish.aem.example/graphql/execute.json/a'

    def test_encodes_semicolons(self) -> None:
        url = build_destination_url(
            'https://publish.aem.example',
            '/graphql/execute.json/site/articles;locale=en;limit=5',
        )
        assert url == (
            'https://publish.aem.example'
            '/graphql/execute.json/site/articles%3Blocale=en%3Blimit=5'
        )

    def test_existing_encoding_is_not_doubled(self) -> None:
        assert encode_persisted_query_path('/q%3Ba=1;b=2') == '/q%3Ba=1%3Bb=2'

    def test_empty_path(self) -> None:
        assert build_destination_url('https://publish.aem.example/', '') == (
            'https://publish.aem.example'
        )


class TestForwardRequest:
    """Tests for forward_request function."""

    def test_forwards_only_authorization(self, mocker, upstream_response) -> None:
        urlopen = mocker.patch(
            'urllib.request.urlopen', return_value=upstream_response(b'{}')
        )

        forward_request('https://publish.aem.example/q', 'Bearer abc')

        request = urlopen.call_args.args[0]
        assert request.full_url == 'https://publish.aem.example/q'
        assert request.get_method() == 'GET'
        assert request.get_header('Authorization') == 'Bearer abc'
        assert request.data is None
        assert 'timeout' not in urlopen.call_args.kwargs

    def test_omits_missing_authorization(self, mocker, upstream_response) -> None:
        urlopen = mocker.patch(
            'urllib.request.urlopen', return_value=upstream_response(b'{}')
        )

        forward_request('https://publish.aem.example/q', None, timeout=5)

        request = urlopen.call_args.args[0]
        assert not request.has_header('Authorization')
        assert urlopen.call_args.kwargs['timeout'] == 5

    def test_http_error_raises_upstream_error(self, mocker) -> None:
        mocker.patch(
            'urllib.request.urlopen',
            side_effect=urllib.error.HTTPError(
                'https://publish.aem.example/q', 503, 'Service Unavailable', None, None
            ),
        )

        with pytest.raises(UpstreamError) as exc_info:
            forward_request('https://publish.aem.example/q', 'Bearer abc')

        assert exc_info.value.upstream_status == 503
        assert 'https://publish.aem.example/q' in exc_info.value.message
        assert 'Bearer abc' not in exc_info.value.message

    def test_http_error_body_is_closed(self, mocker) -> None:
        body = io.BytesIO(b'busy')
        mocker.patch(
            'urllib.request.urlopen',
            side_effect=urllib.error.HTTPError(
                'https://publish.aem.example/q', 503, 'Service Unavailable', None, body
            ),
        )

        with pytest.raises(UpstreamError):
            forward_request('https://publish.aem.example/q', None)

        assert body.closed

    def test_non_2xx_status_raises(self, mocker, upstream_response) -> None:
        mocker.patch(
            'urllib.request.urlopen',
            return_value=upstream_response(b'', status=304),
        )

        with pytest.raises(UpstreamError):
            forward_request('https://publish.aem.example/q', None)

    def test_network_error_propagates(self, mocker) -> None:
        mocker.patch(
            'urllib.request.urlopen',
            side_effect=urllib.error.URLError('connection refused'),
        )

        with pytest.raises(urllib.error.URLError):
            forward_request('https://publish.aem.example/q', None)


class TestParseContent:
    """Tests for parse_content function."""

    @pytest.mark.parametrize(
        'content_type', ['text/html', 'TEXT/HTML; charset=utf-8', 'application/xhtml+xml']
    )
    def test_html_is_text(self, content_type: str) -> None:
        response = UpstreamResponse(200, content_type, b'<p>hi</p>')
        assert parse_content(response) == '<p>hi</p>'

    def test_json_is_parsed(self) -> None:
        response = UpstreamResponse(200, 'application/json', b'{"a":1}')
        assert parse_content(response) == {'a': 1}

    def test_missing_content_type_is_parsed_as_json(self) -> None:
        response = UpstreamResponse(200, '', b'[1, 2]')
        assert parse_content(response) == [1, 2]

    def test_respects_charset(self) -> None:
        response = UpstreamResponse(
            200, 'text/html; charset=latin-1', 'caf\xe9'.encode('latin-1')
        )
        assert parse_content(response) == 'caf\xe9'

    def test_unknown_charset_falls_back_to_utf8(self) -> None:
        response = UpstreamResponse(200, 'text/html; charset=x-bogus', b'<html>ok</html>')
        assert parse_content(response) == '<html>ok</html>'

    def test_invalid_json_raises(self) -> None:
        response = UpstreamResponse(200, 'application/json', b'not json')
        with pytest.raises(ValueError):
            parse_content(response)

    def test_is_html(self) -> None:
        assert is_html('text/HTML')
        assert not is_html('application/json')


def test_fetch_content_returns_parsed_body(mocker, upstream_response, proxy_logger) -> None:
    mocker.patch(
        'urllib.request.urlopen',
        return_value=upstream_response(b'<html></html>', content_type='text/html'),
    )

    content = fetch_content('https://publish.aem.example/page', None, proxy_logger)

    assert content == '<html></html>'
