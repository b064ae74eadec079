"""
Main declarest client.

Ties a configuration snapshot, an endpoint registry and a transport backend
together.
"""

from __future__ import annotations

from typing import Any

import httpx

from .config import Configuration
from .http import RequestDescriptor
from .registry import EndpointRegistry
from .transport import Backend, HttpxBackend


class Client:
    """
    Synchronous declarest client.

    Example:
        ```python
        from typing import Annotated
        from declarest import Client, Configuration, DataParam, interface, request

        @interface(base_url="https://api.example.com", headers=["Accept: application/json"])
        class Search:
            @request(url="/search", data_type="json")
            def query(self, q: Annotated[str, DataParam("q")]) -> None: ...

        with Client(Configuration(timeout=5000)) as client:
            client.register_interface(Search)
            response = client.invoke("Search.query", "declarative http")
        ```
    """

    def __init__(
        self,
        configuration: Configuration | None = None,
        *,
        backend: Backend | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            configuration: Configuration snapshot shared by every endpoint
            backend: Transport backend; defaults to an `HttpxBackend`
            transport: httpx transport for the default backend (e.g. `httpx.MockTransport`)
        """
        self._registry = EndpointRegistry(configuration)
        self._owns_backend = backend is None
        self._backend: Backend = backend or HttpxBackend(
            transport=transport, json_converter=self._registry.configuration.json_converter
        )

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the default backend and release resources."""
        if self._owns_backend and isinstance(self._backend, HttpxBackend):
            self._backend.close()

    @property
    def registry(self) -> EndpointRegistry:
        return self._registry

    @property
    def configuration(self) -> Configuration:
        return self._registry.configuration

    def register_interface(self, cls: type, *, prefix: str | None = None) -> list[str]:
        return self._registry.register_interface(cls, prefix=prefix)

    def assemble(self, endpoint_id: str, *args: Any) -> RequestDescriptor:
        """Build the request for `endpoint_id` without executing it."""
        return self._registry.assemble(endpoint_id, args)

    def invoke(self, endpoint_id: str, *args: Any) -> Any:
        """Assemble and execute `endpoint_id` with positional `args`."""
        return self._backend.execute(self.assemble(endpoint_id, *args))
