"""
httpx-backed execution of assembled requests.

The transport owns sending, retries and interceptor/callback dispatch. It does
not parse responses: the `httpx.Response` is handed to callbacks and returned.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from .converters import JsonConverter, PydanticJsonConverter
from .exceptions import RequestExecutionError
from .http import NameValue, RequestDescriptor
from .templates import to_text

logger = logging.getLogger(__name__)

QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE", "OPTIONS", "TRACE"})


class Backend(Protocol):
    def execute(self, request: RequestDescriptor) -> Any: ...


def encode_pairs(pairs: Sequence[NameValue]) -> str:
    """Form-encode pairs; name-only pairs are emitted without `=`, booleans as `true`/`false`."""
    parts: list[str] = []
    for nv in pairs:
        value = to_text(nv.value)
        if nv.name is None:
            parts.append(quote(value, safe=""))
        elif nv.value is None:
            parts.append(quote(nv.name, safe=""))
        else:
            parts.append(f"{quote(nv.name, safe='')}={quote(value, safe='')}")
    return "&".join(parts)


def _is_json(content_type: str | None) -> bool:
    return bool(content_type) and "json" in content_type.lower()


def build_httpx_request(
    client: httpx.Client,
    request: RequestDescriptor,
    json_converter: JsonConverter | None = None,
) -> httpx.Request:
    """
    Translate a `RequestDescriptor` into an `httpx.Request`.

    Body text is sent verbatim. Otherwise data pairs go into the query string
    for GET-like methods, and into a form-encoded (or JSON object, for JSON
    content types, serialized with `json_converter`) body for the rest.

    Raises:
        SerializationError: If a JSON body value cannot be serialized.
    """
    encoding = request.content_encoding or "utf-8"
    headers = list(request.headers)
    if request.content_type and not request.header_values("Content-Type"):
        headers.append(("Content-Type", request.content_type))

    query = request.query or ""
    content: bytes | None = None
    form_pairs = request.form_pairs

    if request.body is not None:
        content = request.body.encode(encoding)
    elif form_pairs and request.type in QUERY_METHODS:
        extra = encode_pairs(form_pairs)
        query = f"{query}&{extra}" if query else extra
    elif form_pairs:
        if _is_json(request.content_type):
            payload = {nv.name: nv.value for nv in form_pairs if nv.name is not None}
            converter = json_converter or PydanticJsonConverter()
            content = converter.to_json(payload).encode(encoding)
        else:
            content = encode_pairs(form_pairs).encode(encoding)
            if not request.content_type:
                headers.append(("Content-Type", "application/x-www-form-urlencoded"))

    url = f"{request.url}?{query}" if query else request.url
    timeout: Any = httpx.USE_CLIENT_DEFAULT
    if request.timeout:
        timeout = httpx.Timeout(request.timeout / 1000.0)
    return client.build_request(
        request.type,
        url,
        headers=headers,
        content=content,
        timeout=timeout,
    )


class HttpxBackend:
    """
    Execute requests with an `httpx.Client`.

    Hook order: every interceptor's `before_execute` (any False vetoes the call),
    then `on_success` or `on_error` on interceptors followed by the request's own
    callback, then every interceptor's `after_execute`.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        json_converter: JsonConverter | None = None,
    ):
        self._owns_client = client is None
        self._json_converter = json_converter or PydanticJsonConverter()
        self._client = client or httpx.Client(transport=transport)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _send(self, http_request: httpx.Request, request: RequestDescriptor) -> httpx.Response:
        attempts = (request.retry_count or 0) + 1
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._client.send(http_request)
            except httpx.TransportError as e:
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"{request.type} {request.url} failed ({type(e).__name__}); "
                    f"retry {attempt}/{attempts - 1}"
                )

    def execute(self, request: RequestDescriptor) -> httpx.Response | None:
        """
        Send the request.

        Returns:
            The response, or None when an interceptor vetoed execution.

        Raises:
            RequestExecutionError: On transport failure or an error status, unless
                the request carries an error callback.
            SerializationError: If the body cannot be encoded; no hooks run after
                `before_execute`.
        """
        for interceptor in request.interceptors:
            if not interceptor.before_execute(request):
                logger.debug(f"{request.type} {request.url} vetoed by {type(interceptor).__name__}")
                return None

        http_request = build_httpx_request(self._client, request, self._json_converter)
        response: httpx.Response | None = None
        try:
            response = self._send(http_request, request)
            response.raise_for_status()
        except httpx.HTTPError as e:
            for interceptor in request.interceptors:
                interceptor.on_error(e, request, response)
            if request.on_error is not None:
                request.on_error.on_error(e, request, response)
                return response
            raise RequestExecutionError(
                f"{request.type} {request.url} failed: {e}", response=response, cause=e
            ) from e
        else:
            for interceptor in request.interceptors:
                interceptor.on_success(response, request, response)
            if request.on_success is not None:
                request.on_success.on_success(response, request, response)
            return response
        finally:
            for interceptor in request.interceptors:
                interceptor.after_execute(request, response)
