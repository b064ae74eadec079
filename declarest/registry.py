"""
Endpoint registration and dispatch.

Endpoints are declared with the `request` and `interface` decorators (or supplied
directly as `RequestSpec` / `ParameterInfo` metadata), compiled once into
`MethodDescriptor`s, and assembled per call by endpoint id.

Example:
    @interface(base_url="https://api.example.com/${api_version}")
    class Users:
        @request(url="/users/${0}", data_type="json")
        def get(self, user_id: int) -> None: ...

        @request(url="/users", type="post", data=["name=${name}"])
        def create(self, name: Annotated[str, DataVariable()]) -> None: ...

    registry = EndpointRegistry(Configuration(variables={"api_version": "v2"}))
    registry.register_interface(Users)
    registry.assemble("Users.get", [42]).url  # "https://api.example.com/v2/users/42"
"""

from __future__ import annotations

import inspect
import logging
import threading
import typing
from collections.abc import Callable, Iterator, Sequence
from typing import Annotated, Any, TypeVar

from .assembler import assemble
from .config import Configuration
from .descriptor import MethodDescriptor, build_method_descriptor
from .exceptions import ConfigurationError
from .http import RequestDescriptor
from .models import MARKER_TYPES, InterfaceSpec, ParameterInfo, RequestSpec

logger = logging.getLogger(__name__)

REQUEST_ATTR = "__declarest_request__"
INTERFACE_ATTR = "__declarest_interface__"

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


# =============================================================================
# Declaration Decorators
# =============================================================================


def request(url: str, **options: Any) -> Callable[[F], F]:
    """Declare a function or method as an endpoint; options are `RequestSpec` fields."""
    spec = RequestSpec(url=url, **options)

    def decorator(func: F) -> F:
        setattr(func, REQUEST_ATTR, spec)
        return func

    return decorator


def interface(**options: Any) -> Callable[[C], C]:
    """Declare base settings for every endpoint on a class; options are `InterfaceSpec` fields."""
    spec = InterfaceSpec(**options)

    def decorator(cls: C) -> C:
        setattr(cls, INTERFACE_ATTR, spec)
        return cls

    return decorator


def describe_function(func: Callable[..., Any], *, skip_self: bool = False) -> list[ParameterInfo]:
    """
    Read a function's parameters and their markers.

    Markers are taken from `Annotated[...]` metadata; the declared type is the
    first `Annotated` argument.

    Raises:
        ConfigurationError: For `*args` / `**kwargs` parameters, or when the
            annotations cannot be evaluated (markers would be lost).
    """
    signature = inspect.signature(func)
    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError) as e:
        raise ConfigurationError(
            f"{func.__qualname__}: cannot evaluate parameter annotations: {e}", cause=e
        ) from e

    params = list(signature.parameters.values())
    if skip_self and params and params[0].name in ("self", "cls"):
        params = params[1:]

    infos: list[ParameterInfo] = []
    for index, param in enumerate(params):
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise ConfigurationError(
                f"{func.__qualname__}: variadic parameter '{param.name}' is not supported"
            )
        annotation = hints.get(param.name, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = Any
        markers: tuple[Any, ...] = ()
        if typing.get_origin(annotation) is Annotated:
            base, *metadata = typing.get_args(annotation)
            markers = tuple(m for m in metadata if isinstance(m, MARKER_TYPES))
            annotation = base
        infos.append(ParameterInfo(index, param.name, annotation, markers))
    return infos


# =============================================================================
# Registry
# =============================================================================


class EndpointRegistry:
    """
    Dispatch table from endpoint id to compiled `MethodDescriptor`.

    Registration is expected to happen at startup; lookups and assembly are
    safe from any number of threads.
    """

    def __init__(self, configuration: Configuration | None = None):
        self._configuration = configuration or Configuration()
        self._descriptors: dict[str, MethodDescriptor] = {}
        self._lock = threading.Lock()

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    def register(
        self,
        endpoint_id: str,
        request: RequestSpec,
        parameters: Sequence[ParameterInfo] = (),
        interface: InterfaceSpec | None = None,
    ) -> MethodDescriptor:
        """
        Compile and register one endpoint.

        Raises:
            ConfigurationError: If the id is taken or the declaration is invalid.
        """
        descriptor = build_method_descriptor(
            endpoint_id, request, parameters, self._configuration, interface
        )
        with self._lock:
            if endpoint_id in self._descriptors:
                raise ConfigurationError(f"Endpoint '{endpoint_id}' is already registered")
            self._descriptors[endpoint_id] = descriptor
        return descriptor

    def register_function(
        self,
        func: Callable[..., Any],
        *,
        endpoint_id: str | None = None,
        interface: InterfaceSpec | None = None,
        skip_self: bool = False,
    ) -> MethodDescriptor:
        spec = getattr(func, REQUEST_ATTR, None)
        if not isinstance(spec, RequestSpec):
            raise ConfigurationError(f"{func.__qualname__} is not decorated with @request")
        return self.register(
            endpoint_id or func.__qualname__,
            spec,
            describe_function(func, skip_self=skip_self),
            interface,
        )

    def register_interface(self, cls: type, *, prefix: str | None = None) -> list[str]:
        """
        Register every `@request` method of `cls` as `<prefix>.<method>`.

        Methods inherited from base classes are included; an override in a
        subclass replaces the base declaration.
        """
        interface_spec = getattr(cls, INTERFACE_ATTR, None)
        prefix = prefix or cls.__name__
        registered: list[str] = []
        seen: set[str] = set()
        members = [
            (name, member)
            for klass in cls.__mro__
            if klass is not object
            for name, member in vars(klass).items()
        ]
        for name, member in members:
            if name in seen:
                continue
            seen.add(name)
            func = member.__func__ if isinstance(member, (staticmethod, classmethod)) else member
            if not callable(func) or not hasattr(func, REQUEST_ATTR):
                continue
            endpoint_id = f"{prefix}.{name}"
            self.register_function(
                func,
                endpoint_id=endpoint_id,
                interface=interface_spec,
                skip_self=not isinstance(member, staticmethod),
            )
            registered.append(endpoint_id)
        logger.debug(f"Registered {len(registered)} endpoint(s) from {cls.__qualname__}")
        return registered

    def get(self, endpoint_id: str) -> MethodDescriptor:
        try:
            return self._descriptors[endpoint_id]
        except KeyError:
            raise KeyError(f"Unknown endpoint '{endpoint_id}'") from None

    def assemble(self, endpoint_id: str, args: Sequence[Any] = ()) -> RequestDescriptor:
        return assemble(self.get(endpoint_id), args)

    @property
    def endpoint_ids(self) -> list[str]:
        return list(self._descriptors)

    def __contains__(self, endpoint_id: object) -> bool:
        return endpoint_id in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[MethodDescriptor]:
        return iter(list(self._descriptors.values()))
