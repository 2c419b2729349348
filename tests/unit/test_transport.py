from __future__ import annotations

import json

import httpx
import pytest

from elastic_frame.domain import HttpMethod
from elastic_frame.errors import HttpStatusError
from elastic_frame.settings import ElasticFrameSettings
from elastic_frame.transport import HttpxTransport, build_transport, error_reason
from elastic_frame.transport import adapters

_NOT_FOUND = 404
_TIMEOUT = 12.0


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_send_returns_decoded_json_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"acknowledged": True})

    transport = HttpxTransport(client=_client(handler))
    response = transport.send(HttpMethod.PUT, "http://es:9200/iris", json_body={"mappings": {}})

    assert response == {"acknowledged": True}
    assert seen[0].method == "PUT"
    assert json.loads(seen[0].content) == {"mappings": {}}


def test_send_supports_delete_with_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert json.loads(request.content) == {"scroll_id": ["abc"]}
        return httpx.Response(200, json={"succeeded": True})

    transport = HttpxTransport(client=_client(handler))

    assert transport.send(HttpMethod.DELETE, "http://es:9200/_search/scroll", json_body={"scroll_id": ["abc"]})


def test_send_streams_raw_content_with_headers(tmp_path) -> None:
    payload_path = tmp_path / "bulk.ndjson"
    payload_path.write_text('{"index": {}}\n{"a": 1}\n', encoding="utf-8")

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["content-type"] == "application/x-ndjson"
        assert request.read() == b'{"index": {}}\n{"a": 1}\n'
        return httpx.Response(200, json={"errors": False})

    transport = HttpxTransport(client=_client(handler))
    with payload_path.open("rb") as payload:
        response = transport.send(
            HttpMethod.PUT,
            "http://es:9200/_bulk",
            content=payload,
            headers={"Content-Type": "application/x-ndjson"},
        )

    assert response == {"errors": False}


def test_empty_success_body_returns_empty_dict() -> None:
    transport = HttpxTransport(client=_client(lambda _request: httpx.Response(200)))

    assert transport.send(HttpMethod.DELETE, "http://es:9200/iris") == {}


def test_non_2xx_status_raises_http_status_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            _NOT_FOUND,
            json={"error": {"type": "index_not_found_exception", "reason": "no such index [iris]"}},
        )

    transport = HttpxTransport(client=_client(handler))

    with pytest.raises(HttpStatusError, match="no such index") as exc_info:
        transport.send(HttpMethod.POST, "http://es:9200/iris/_search", json_body={})

    assert exc_info.value.status_code == _NOT_FOUND
    assert exc_info.value.method == "POST"
    assert exc_info.value.url == "http://es:9200/iris/_search"


@pytest.mark.parametrize(
    ("response", "expected"),
    [
        (httpx.Response(400, json={"error": {"type": "parsing_exception"}}), "parsing_exception"),
        (httpx.Response(400, json={"error": "plain message"}), "plain message"),
        (httpx.Response(500, text="upstream exploded"), "upstream exploded"),
        (httpx.Response(503), "Service Unavailable"),
    ],
)
def test_error_reason_variants(response: httpx.Response, expected: str) -> None:
    assert error_reason(response) == expected


def test_transport_closes_client_on_exit() -> None:
    client = _client(lambda _request: httpx.Response(200))

    with HttpxTransport(client=client):
        pass

    assert client.is_closed


def test_build_transport_wraps_injected_client() -> None:
    client = _client(lambda _request: httpx.Response(200))

    transport = build_transport(client=client)

    assert isinstance(transport, HttpxTransport)
    assert transport.client is client


def test_build_transport_from_settings(monkeypatch) -> None:
    created: dict[str, object] = {}

    class _Client:
        def __init__(self, **kwargs: object) -> None:
            created.update(kwargs)

    monkeypatch.setattr(adapters.httpx, "Client", _Client)

    settings = ElasticFrameSettings(timeout_s=_TIMEOUT, verify_certs=False, proxy_url="http://proxy:3128")
    build_transport(settings=settings)

    assert created == {"timeout": _TIMEOUT, "verify": False, "proxy": "http://proxy:3128"}
