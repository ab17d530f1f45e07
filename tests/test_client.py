from __future__ import annotations

import logging
from typing import List

import httpx
import pytest

from http_supports.client import HttpClient, HttpMethod
from http_supports.config import ClientConfig
from http_supports.exceptions import ConfigurationError, DecodeError, UnsupportedVariantError
from http_supports.middleware import HandlerStack


@pytest.fixture()
def sent() -> List[httpx.Request]:
    return []


@pytest.fixture()
def client(sent: List[httpx.Request]) -> HttpClient:
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        if request.url.path == "/status/500":
            return httpx.Response(500, text="boom")
        if request.url.path == "/json":
            return httpx.Response(200, json={"a": 1})
        if request.url.path == "/broken":
            return httpx.Response(200, headers={"Content-Type": "application/json"}, content=b"{not json")
        return httpx.Response(200, text="ok")

    cfg = ClientConfig(base_uri="https://api.example.com/ignored/path")
    return HttpClient(cfg, transport=httpx.MockTransport(handler))


def test_get_sends_query_and_headers(client: HttpClient, sent: List[httpx.Request]) -> None:
    response = client.get("/search", {"q": "term"}, {"X-Trace": "abc"})

    assert response.status_code == 200
    request = sent[0]
    assert request.method == "GET"
    assert str(request.url) == "https://api.example.com/search?q=term"
    assert request.headers["X-Trace"] == "abc"


def test_post_mapping_is_form_encoded(client: HttpClient, sent: List[httpx.Request]) -> None:
    client.post("/submit", {"x": "y"})

    request = sent[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert request.content == b"x=y"


def test_post_non_mapping_is_raw_body(client: HttpClient, sent: List[httpx.Request]) -> None:
    client.post("/submit", "raw-string", {"headers": {"X-Kind": "raw"}})

    request = sent[0]
    assert request.content == b"raw-string"
    assert "Content-Type" not in request.headers
    assert request.headers["X-Kind"] == "raw"


def test_put_patch_delete(client: HttpClient, sent: List[httpx.Request]) -> None:
    client.put("/items/1", {"name": "a"})
    client.patch("/items/1", b"partial")
    client.delete("/items/1")

    assert [r.method for r in sent] == ["PUT", "PATCH", "DELETE"]
    assert sent[0].content == b"name=a"
    assert sent[1].content == b"partial"


def test_json_option(client: HttpClient, sent: List[httpx.Request]) -> None:
    client.request("post", "/submit", {"json": {"k": [1, 2]}})

    assert sent[0].headers["Content-Type"] == "application/json"
    assert b'"k"' in sent[0].content


def test_method_is_case_insensitive(client: HttpClient, sent: List[httpx.Request]) -> None:
    client.request("get", "/a")
    client.request("Delete", "/b")
    client.request(HttpMethod.HEAD, "/c")

    assert [r.method for r in sent] == ["GET", "DELETE", "HEAD"]


def test_unsupported_method(client: HttpClient, sent: List[httpx.Request]) -> None:
    with pytest.raises(UnsupportedVariantError):
        client.request("fetch", "/a")
    assert sent == []


def test_unknown_option_rejected(client: HttpClient, sent: List[httpx.Request]) -> None:
    with pytest.raises(ConfigurationError):
        client.request("GET", "/a", {"verify": False})
    assert sent == []


def test_error_status_returned_by_default(client: HttpClient) -> None:
    response = client.get("/status/500")

    assert response.status_code == 500
    assert response.text == "boom"


def test_http_errors_option_raises_with_response(client: HttpClient) -> None:
    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        client.request("GET", "/status/500", {"http_errors": True})

    assert excinfo.value.response.status_code == 500


def test_request_unwrap_decodes_json(client: HttpClient) -> None:
    assert client.request_unwrap("GET", "/json") == {"a": 1}
    assert client.request_unwrap("GET", "/plain") == "ok"


def test_request_unwrap_propagates_decode_error(client: HttpClient) -> None:
    with pytest.raises(DecodeError):
        client.request_unwrap("GET", "/broken")


def test_per_call_timeout_override(client: HttpClient, sent: List[httpx.Request]) -> None:
    client.get("/default")
    client.request("GET", "/override", {"timeout": 1.5})

    assert sent[0].extensions["timeout"] == {"connect": 3.0, "read": 5.0, "write": 5.0, "pool": 5.0}
    assert sent[1].extensions["timeout"] == {"connect": 3.0, "read": 1.5, "write": 1.5, "pool": 1.5}


def test_base_uri_normalized() -> None:
    client = HttpClient()
    client.base_uri = "https://host:8443/path?x=1"

    assert client.base_uri == "https://host:8443"


def test_get_options_defaults_and_overlay() -> None:
    stack = HandlerStack(httpx.MockTransport(lambda request: httpx.Response(204)))
    client = HttpClient(handler_stack=stack)

    options = client.get_options()
    assert options == {"base_uri": "", "timeout": 5.0, "connect_timeout": 3.0, "handler": stack}

    client.set_options({"timeout": 9.0, "follow_redirects": True})
    options = client.get_options()
    assert options["timeout"] == 9.0
    assert options["follow_redirects"] is True
    assert options["connect_timeout"] == 3.0


def test_http_options_reach_httpx_client() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    client = HttpClient(ClientConfig(base_uri="http://svc"), transport=transport)
    client.set_options({"headers": {"User-Agent": "http-supports-test"}})

    http = client.get_http_client()
    assert http.headers["User-Agent"] == "http-supports-test"
    assert http.base_url.host == "svc"
    assert http.timeout.connect == 3.0


def test_setters_rebuild_http_client() -> None:
    client = HttpClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    first = client.get_http_client()
    assert client.get_http_client() is first

    client.timeout = 12
    second = client.get_http_client()
    assert second is not first
    assert second.timeout.read == 12.0


def test_set_http_client_is_used() -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(200)

    client = HttpClient()
    client.set_http_client(httpx.Client(base_url="http://custom", transport=httpx.MockTransport(handler)))
    client.get("/x")

    assert seen == ["custom"]


def test_debug_logs_exchange(client: HttpClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="http_supports.client")

    client.request("GET", "/status/500", {"debug": True})

    messages = [record.getMessage() for record in caplog.records]
    assert any(m.startswith("Sending GET /status/500") for m in messages)
    assert any("status=500" in m for m in messages)


def test_context_manager_closes_client() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    with HttpClient(ClientConfig(base_uri="http://svc"), transport=transport) as client:
        http = client.get_http_client()
    assert http.is_closed


def test_http_options_override_base_url_and_transport() -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200)

    client = HttpClient(ClientConfig(base_uri="http://svc"), transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    client.set_options({"base_url": "http://other", "transport": httpx.MockTransport(handler)})

    response = client.get("/x")

    assert response.status_code == 200
    assert seen == ["http://other/x"]


def test_connect_timeout_override_uses_option_timeout(sent: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200)

    client = HttpClient(ClientConfig(base_uri="http://svc"), transport=httpx.MockTransport(handler))
    client.set_options({"timeout": 8.0})

    client.request("GET", "/x", {"connect_timeout": 1.0})

    assert sent[0].extensions["timeout"] == {"connect": 1.0, "read": 8.0, "write": 8.0, "pool": 8.0}
