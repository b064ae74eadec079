from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

import httpx
import pytest

from declarest.callbacks import OnError, OnSuccess
from declarest.exceptions import RequestExecutionError, SerializationError
from declarest.http import NameValue, RequestDescriptor
from declarest.interceptors import Interceptor
from declarest.transport import HttpxBackend, build_httpx_request, encode_pairs


class Recorder(Interceptor):
    def __init__(self, label: str, events: list[str], allow: bool = True) -> None:
        self.label = label
        self.events = events
        self.allow = allow

    def before_execute(self, request: RequestDescriptor) -> bool:
        self.events.append(f"{self.label}.before")
        return self.allow

    def on_success(self, data: Any, request: RequestDescriptor, response: Any) -> None:
        self.events.append(f"{self.label}.success")

    def on_error(self, error: BaseException, request: RequestDescriptor, response: Any) -> None:
        self.events.append(f"{self.label}.error")

    def after_execute(self, request: RequestDescriptor, response: Any) -> None:
        self.events.append(f"{self.label}.after")


class SuccessRecorder(OnSuccess[Any]):
    def __init__(self, events: list[str]) -> None:
        self.events = events

    def on_success(self, data: Any, request: RequestDescriptor, response: Any) -> None:
        self.events.append(f"callback.success:{response.status_code}")


class ErrorRecorder(OnError):
    def __init__(self, events: list[str]) -> None:
        self.events = events

    def on_error(self, error: BaseException, request: RequestDescriptor, response: Any) -> None:
        self.events.append(f"callback.error:{type(error).__name__}")


def _request(**overrides: Any) -> RequestDescriptor:
    fields: dict[str, Any] = {
        "protocol": "https",
        "host_port": "api.example.com",
        "path": "/items",
        "type": "GET",
    }
    fields.update(overrides)
    return RequestDescriptor(**fields)


def _build(request: RequestDescriptor) -> httpx.Request:
    with httpx.Client() as client:
        return build_httpx_request(client, request)


# =============================================================================
# Request translation
# =============================================================================


def test_encode_pairs() -> None:
    pairs = [NameValue("a b", "1&2"), NameValue("flag"), NameValue(None, "raw value")]
    assert encode_pairs(pairs) == "a%20b=1%262&flag&raw%20value"


def test_get_moves_data_pairs_into_query() -> None:
    http_request = _build(
        _request(
            query="page=1",
            data=(NameValue("page", "1", is_query=True), NameValue("q", "x y")),
            headers=(("Accept", "application/json"),),
            timeout=1500,
        )
    )
    assert http_request.method == "GET"
    assert str(http_request.url) == "https://api.example.com/items?page=1&q=x%20y"
    assert http_request.headers["Accept"] == "application/json"
    assert http_request.extensions["timeout"]["read"] == 1.5


def test_post_form_encodes_data_pairs() -> None:
    http_request = _build(_request(type="POST", data=(NameValue("name", "Ada"),)))
    assert http_request.content == b"name=Ada"
    assert http_request.headers["Content-Type"] == "application/x-www-form-urlencoded"


def test_post_json_content_type_sends_object() -> None:
    http_request = _build(
        _request(
            type="POST",
            data=(NameValue("name", "Ada"), NameValue("age", 36)),
            content_type="application/json",
        )
    )
    assert json.loads(http_request.content) == {"name": "Ada", "age": 36}
    assert http_request.headers["Content-Type"] == "application/json"


def test_explicit_body_is_sent_verbatim() -> None:
    http_request = _build(
        _request(
            type="PUT",
            body="a=1&b",
            data=(NameValue("a", "1"), NameValue("b")),
            content_type="text/plain",
            headers=(("content-type", "text/csv"),),
        )
    )
    assert http_request.content == b"a=1&b"
    assert http_request.headers.get_list("Content-Type") == ["text/csv"]


def test_form_values_use_textual_conversion() -> None:
    http_request = _build(
        _request(
            type="POST",
            data=(NameValue("active", True), NameValue("archived", False), NameValue("n", 3)),
        )
    )
    assert http_request.content == b"active=true&archived=false&n=3"

    query_request = _build(_request(data=(NameValue("active", True),)))
    assert str(query_request.url) == "https://api.example.com/items?active=true"


def test_json_body_serializes_rich_values() -> None:
    http_request = _build(
        _request(
            type="POST",
            data=(
                NameValue("at", datetime(2024, 1, 2, 3, 4, 5)),
                NameValue("on", date(2024, 1, 2)),
                NameValue("ok", True),
            ),
            content_type="application/json",
        )
    )
    assert json.loads(http_request.content) == {
        "at": "2024-01-02T03:04:05",
        "on": "2024-01-02",
        "ok": True,
    }


def test_unserializable_json_body_raises_before_sending() -> None:
    events: list[str] = []
    sent: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200)

    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    request = _request(
        type="POST",
        data=(NameValue("blob", object()),),
        content_type="application/json",
        interceptors=(Recorder("r", events),),
    )
    with pytest.raises(SerializationError, match="Cannot serialize"):
        backend.execute(request)
    assert sent == []
    assert events == ["r.before"]


# =============================================================================
# Execution
# =============================================================================


def test_hook_order_on_success() -> None:
    events: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        events.append("send")
        return httpx.Response(200, json={"ok": True}, request=request)

    request = _request(
        interceptors=(Recorder("a", events), Recorder("b", events)),
        on_success=SuccessRecorder(events),
    )
    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    try:
        response = backend.execute(request)
    finally:
        backend.close()
    assert response is not None
    assert response.json() == {"ok": True}
    assert events == [
        "a.before",
        "b.before",
        "send",
        "a.success",
        "b.success",
        "callback.success:200",
        "a.after",
        "b.after",
    ]


def test_veto_skips_the_network() -> None:
    events: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        pytest.fail(f"Unexpected network call: {request.method} {request.url!s}")

    request = _request(interceptors=(Recorder("a", events, allow=False), Recorder("b", events)))
    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    assert backend.execute(request) is None
    assert events == ["a.before"]


def test_error_status_raises_without_error_callback() -> None:
    events: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={}, request=request)

    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    with pytest.raises(RequestExecutionError) as exc:
        backend.execute(_request(interceptors=(Recorder("a", events),)))
    assert isinstance(exc.value.response, httpx.Response)
    assert exc.value.response.status_code == 404
    assert isinstance(exc.value.cause, httpx.HTTPStatusError)
    assert events == ["a.before", "a.error", "a.after"]


def test_error_callback_suppresses_raise() -> None:
    events: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, request=request)

    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    response = backend.execute(_request(on_error=ErrorRecorder(events)))
    assert response is not None
    assert response.status_code == 500
    assert events == ["callback.error:HTTPStatusError"]


def test_transport_errors_are_retried() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(204, request=request)

    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    response = backend.execute(_request(retry_count=2))
    assert response is not None
    assert response.status_code == 204
    assert len(attempts) == 3


def test_retries_are_exhausted() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        raise httpx.ConnectError("refused", request=request)

    backend = HttpxBackend(transport=httpx.MockTransport(handler))
    with pytest.raises(RequestExecutionError) as exc:
        backend.execute(_request(retry_count=1))
    assert exc.value.response is None
    assert len(attempts) == 2
