"""
Method descriptors.

A `MethodDescriptor` is the compiled, immutable form of one declared endpoint:
templates compiled, parameters classified, interceptors and credentials resolved
and base policies fixed. It is built once and shared by every call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .classifier import ClassifiedParameters, ParameterDescriptor, classify_parameters
from .config import Configuration, CredentialBundle
from .exceptions import ConfigurationError, TemplateResolutionError
from .interceptors import Interceptor
from .models import InterfaceSpec, ParameterInfo, RequestSpec
from .policies import is_set
from .scope import MappingVariable
from .templates import Template, compile_template

logger = logging.getLogger(__name__)

PolicyValue = int | Template | None


@dataclass(frozen=True, slots=True)
class MethodDescriptor:
    endpoint_id: str
    configuration: Configuration
    url: Template
    type: Template
    data_type: Template
    content_type: Template
    content_encoding: Template
    parameters: ClassifiedParameters
    base_url: Template | None = None
    base_content_type: Template | None = None
    base_content_encoding: Template | None = None
    base_headers: tuple[Template, ...] = ()
    data: tuple[Template, ...] = ()
    headers: tuple[Template, ...] = ()
    timeout: PolicyValue = None
    retry_count: PolicyValue = None
    base_timeout: int | None = None
    base_retry_count: int | None = None
    global_interceptors: tuple[Interceptor, ...] = ()
    base_interceptors: tuple[Interceptor, ...] = ()
    interceptors: tuple[Interceptor, ...] = ()
    key_store: CredentialBundle | None = None
    async_: bool = False
    log_enabled: bool = True

    @property
    def variables(self) -> Mapping[str, MappingVariable]:
        return self.parameters.variables

    @property
    def named_parameters(self) -> tuple[ParameterDescriptor, ...]:
        return self.parameters.named_parameters

    @property
    def arity(self) -> int:
        return self.parameters.arity

    @property
    def success_type(self) -> Any:
        return self.parameters.success_type


def _compile(endpoint_id: str, what: str, text: str | None) -> Template:
    try:
        return compile_template(text)
    except TemplateResolutionError as e:
        raise ConfigurationError(
            f"Endpoint '{endpoint_id}': invalid {what} template: {e.message}", cause=e
        ) from e


def _compile_optional(endpoint_id: str, what: str, text: str | None) -> Template | None:
    if not text or not text.strip():
        return None
    return _compile(endpoint_id, what, text)


def _compile_policy(endpoint_id: str, what: str, value: int | str | None) -> PolicyValue:
    """Integers are fixed now; template strings are rendered per call."""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            value = int(text)
        else:
            return _compile(endpoint_id, what, text)
    return value if is_set(value) else None


def _positive(value: int | None) -> int | None:
    return value if is_set(value) else None


def build_method_descriptor(
    endpoint_id: str,
    request: RequestSpec,
    parameters: Sequence[ParameterInfo],
    configuration: Configuration,
    interface: InterfaceSpec | None = None,
) -> MethodDescriptor:
    """
    Compile one endpoint declaration.

    Raises:
        ConfigurationError: For invalid templates, unknown filters, non-interceptor
            classes, unknown credential bundles or inconsistent parameters.
    """
    interface = interface or InterfaceSpec()
    base_url = _compile_optional(endpoint_id, "base URL", interface.base_url)
    if not request.url.strip() and base_url is None:
        raise ConfigurationError(f"Endpoint '{endpoint_id}' declares no URL")
    if not request.type.strip():
        raise ConfigurationError(f"Endpoint '{endpoint_id}' declares no request type")

    classified = classify_parameters(parameters, configuration.filters)
    factory = configuration.interceptor_factory

    key_store = None
    if request.key_store.strip():
        key_store = configuration.get_key_store(request.key_store.strip())

    descriptor = MethodDescriptor(
        endpoint_id=endpoint_id,
        configuration=configuration,
        url=_compile(endpoint_id, "URL", request.url),
        type=_compile(endpoint_id, "type", request.type),
        data_type=_compile(endpoint_id, "data type", request.data_type),
        content_type=_compile(endpoint_id, "content type", request.content_type),
        content_encoding=_compile(endpoint_id, "content encoding", request.content_encoding),
        parameters=classified,
        base_url=base_url,
        base_content_type=_compile_optional(
            endpoint_id, "base content type", interface.content_type
        ),
        base_content_encoding=_compile_optional(
            endpoint_id, "base content encoding", interface.content_encoding
        ),
        base_headers=tuple(_compile(endpoint_id, "base header", h) for h in interface.headers),
        data=tuple(_compile(endpoint_id, "data", d) for d in request.data),
        headers=tuple(_compile(endpoint_id, "header", h) for h in request.headers),
        timeout=_compile_policy(endpoint_id, "timeout", request.timeout),
        retry_count=_compile_policy(endpoint_id, "retry count", request.retry_count),
        base_timeout=_positive(interface.timeout),
        base_retry_count=_positive(interface.retry_count),
        global_interceptors=configuration.global_interceptors(),
        base_interceptors=factory.resolve_all(interface.interceptors),
        interceptors=factory.resolve_all(request.interceptors),
        key_store=key_store,
        async_=request.async_,
        log_enabled=configuration.log_enabled or request.log_enabled,
    )
    logger.debug(
        f"Registered endpoint {endpoint_id}: {request.type} {request.url} "
        f"({classified.arity} parameter(s), {len(classified.named_parameters)} request field(s))"
    )
    return descriptor
