from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from windshaft.client import HttpBackendClient
from windshaft.errors import BackendResponseError


def _client(handler) -> HttpBackendClient:
    return HttpBackendClient(
        user_name="acme",
        url_template="https://{user}.example.com",
        timeout_s=5.0,
        transport=httpx.MockTransport(handler),
    )


def test_posts_definition_and_params(monkeypatch):
    monkeypatch.delenv("WINDSHAFT_MAPS_API_BASE_URL", raising=False)
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        seen["params"] = dict(request.url.params)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"layergroupid": "lg", "metadata": {"layers": []}})

    body = asyncio.run(
        _client(handler).instantiate_map(
            {"layers": [{"type": "mapnik"}]},
            {
                "stat_tag": "t",
                "api_key": "k",
                "auth_token": None,
                "filters": {"dataviews": {"d1": {"accept": ["a"]}}},
            },
        )
    )

    assert body["layergroupid"] == "lg"
    assert seen["method"] == "POST"
    assert seen["url"] == "https://acme.example.com/api/v1/map"
    assert seen["body"] == {"layers": [{"type": "mapnik"}]}
    assert seen["params"]["stat_tag"] == "t"
    assert seen["params"]["api_key"] == "k"
    assert "auth_token" not in seen["params"]
    assert json.loads(seen["params"]["filters"]) == {"dataviews": {"d1": {"accept": ["a"]}}}


def test_error_payload_raises_backend_response_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"errors": ["syntax error"]})

    with pytest.raises(BackendResponseError) as exc_info:
        asyncio.run(_client(handler).instantiate_map({}, {}))
    assert exc_info.value.status_code == 400
    assert exc_info.value.response == {"errors": ["syntax error"]}


def test_errors_in_ok_response_are_still_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors_with_context": [{"message": "x"}]})

    with pytest.raises(BackendResponseError):
        asyncio.run(_client(handler).instantiate_map({}, {}))


def test_non_json_error_raises_http_status_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_client(handler).instantiate_map({}, {}))


def test_transport_failure_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(httpx.ConnectError):
        asyncio.run(_client(handler).instantiate_map({}, {}))
