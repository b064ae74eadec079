"""
The assembled request handed to a transport.

A `RequestDescriptor` is built fresh for every call, is immutable, and carries
everything a transport needs: the decomposed URL, data and header pairs, body
text, policy fields, interceptors and callbacks.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from .callbacks import OnError, OnSuccess
    from .config import CredentialBundle
    from .interceptors import Interceptor

Header: TypeAlias = tuple[str, str]


class DataType(Enum):
    """Expected response data type; consumed by the transport."""

    TEXT = "TEXT"
    JSON = "JSON"
    XML = "XML"
    BINARY = "BINARY"

    @classmethod
    def parse(cls, value: str) -> DataType:
        return cls[value.strip().upper()]


@dataclass(frozen=True, slots=True)
class NameValue:
    """
    A query or data pair.

    `value is None` marks a name-only flag (rendered without `=`); `name is None`
    marks an unnamed value produced by a filtered object parameter.
    """

    name: str | None
    value: Any = None
    is_query: bool = False

    @property
    def is_flag(self) -> bool:
        return self.value is None

    def __str__(self) -> str:
        if self.name is None:
            return "" if self.value is None else str(self.value)
        if self.value is None:
            return self.name
        return f"{self.name}={self.value}"


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    protocol: str
    host_port: str
    path: str
    type: str
    query: str | None = None
    data: tuple[NameValue, ...] = ()
    body: str | None = None
    headers: tuple[Header, ...] = ()
    content_type: str | None = None
    content_encoding: str | None = None
    data_type: DataType = DataType.TEXT
    timeout: int | None = None
    retry_count: int | None = None
    async_: bool = False
    log_enabled: bool = True
    interceptors: tuple[Interceptor, ...] = ()
    key_store: CredentialBundle | None = None
    on_success: OnSuccess[Any] | None = None
    on_error: OnError | None = None
    success_type: Any = Any
    arguments: tuple[Any, ...] = field(default=())
    endpoint_id: str | None = None

    @property
    def url(self) -> str:
        """protocol://host[:port]path, without the query."""
        return f"{self.protocol}://{self.host_port}{self.path}"

    @property
    def full_url(self) -> str:
        return f"{self.url}?{self.query}" if self.query else self.url

    @property
    def query_pairs(self) -> tuple[NameValue, ...]:
        return tuple(nv for nv in self.data if nv.is_query)

    @property
    def form_pairs(self) -> tuple[NameValue, ...]:
        return tuple(nv for nv in self.data if not nv.is_query)

    def header_values(self, name: str) -> list[str]:
        """All values of header `name` (case-insensitive), in order."""
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]

    def to_dict(self) -> dict[str, Any]:
        """A JSON-friendly view, used for logging and the CLI."""

        def _pairs(pairs: Sequence[NameValue]) -> list[list[Any]]:
            return [[nv.name, nv.value if nv.value is None else str(nv.value)] for nv in pairs]

        return {
            "endpoint": self.endpoint_id,
            "type": self.type,
            "url": self.url,
            "protocol": self.protocol,
            "hostPort": self.host_port,
            "path": self.path,
            "query": self.query,
            "queryPairs": _pairs(self.query_pairs),
            "data": _pairs(self.form_pairs),
            "body": self.body,
            "headers": [list(h) for h in self.headers],
            "contentType": self.content_type,
            "contentEncoding": self.content_encoding,
            "dataType": self.data_type.value,
            "timeout": self.timeout,
            "retryCount": self.retry_count,
            "async": self.async_,
            "logEnabled": self.log_enabled,
            "keyStore": self.key_store.id if self.key_store is not None else None,
            "interceptors": [type(i).__qualname__ for i in self.interceptors],
        }
