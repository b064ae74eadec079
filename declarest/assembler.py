"""
Request assembly.

`assemble` turns a `MethodDescriptor` plus one call's arguments into a
`RequestDescriptor` in a single pass. Nothing is handed out until every step
has succeeded; any error aborts the call.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from .classifier import ParameterDescriptor, ParameterRole
from .config import Configuration
from .converters import iter_object_fields
from .descriptor import MethodDescriptor, PolicyValue
from .exceptions import TemplateResolutionError, UnknownDataTypeError
from .http import DataType, Header, NameValue, RequestDescriptor
from .interceptors import merge_interceptors
from .policies import effective, merge_headers
from .scope import CallScope
from .templates import Template, to_text
from .urls import normalize_url

logger = logging.getLogger(__name__)


def _render_optional(template: Template | None, args: Sequence[Any], scope: CallScope) -> str:
    if template is None:
        return ""
    return template.render(args, scope, required=False).strip()


def _render_policy(
    value: PolicyValue, what: str, args: Sequence[Any], scope: CallScope
) -> int | None:
    if not isinstance(value, Template):
        return value
    text = value.render(args, scope).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError as e:
        raise TemplateResolutionError(
            f"{what} template {value.text!r} rendered {text!r}, which is not an integer",
            cause=e,
        ) from e


# =============================================================================
# Parameters, Body, Headers
# =============================================================================


def _parameter_pairs(
    parameter: ParameterDescriptor, value: Any, configuration: Configuration
) -> list[NameValue]:
    chain = parameter.filter_chain
    if parameter.role is ParameterRole.OBJECT_JSON:
        assert parameter.json_field is not None
        json_text = ""
        if value is not None:
            json_text = configuration.json_converter.to_json(chain.apply(value, configuration))
        return [NameValue(parameter.json_field, json_text)]

    if parameter.role is ParameterRole.OBJECT_EXPANSION:
        if not chain.is_empty:
            return [NameValue(None, chain.apply(value, configuration))]
        return [
            NameValue(name, field_value)
            for name, field_value in iter_object_fields(value, configuration.field_adapters)
            if field_value is not None
        ]

    if value is None:
        return []
    filtered = chain.apply(value, configuration)
    if filtered is None:
        return []
    return [NameValue(parameter.name, to_text(filtered))]


def _split_pairs(fragment: str) -> list[NameValue]:
    pairs: list[NameValue] = []
    for segment in fragment.split("&"):
        if not segment.strip():
            continue
        name, sep, value = segment.partition("=")
        pairs.append(NameValue(name.strip(), value.strip() if sep else None))
    return pairs


def _render_body(
    templates: Sequence[Template], args: Sequence[Any], scope: CallScope
) -> tuple[str | None, list[NameValue]]:
    fragments = [t.render(args, scope) for t in templates]
    pairs: list[NameValue] = []
    for fragment in fragments:
        pairs.extend(_split_pairs(fragment))
    body = "&".join(fragments)
    return (body or None), pairs


def _render_headers(
    templates: Iterable[Template], args: Sequence[Any], scope: CallScope
) -> list[Header]:
    headers: list[Header] = []
    for template in templates:
        name, sep, value = template.render(args, scope).partition(":")
        name, value = name.strip(), value.strip()
        if sep and name and value:
            headers.append((name, value))
    return headers


def _resolve_data_type(rendered: str, default: str | None) -> DataType:
    text = rendered or (default or "").strip()
    if not text:
        return DataType.TEXT
    try:
        return DataType.parse(text)
    except KeyError:
        known = ", ".join(t.value for t in DataType)
        raise UnknownDataTypeError(
            f"Unknown data type '{text}'; expected one of: {known}", value=text
        ) from None


# =============================================================================
# Assembly
# =============================================================================


def assemble(descriptor: MethodDescriptor, args: Sequence[Any]) -> RequestDescriptor:
    """
    Build the request for one call.

    Raises:
        TemplateResolutionError: Wrong argument count or an unresolvable placeholder.
        VariableNotFoundError: A required named placeholder resolves nowhere.
        MalformedUrlError: The composed URL is invalid.
        UnknownDataTypeError: The data type matches no `DataType`.
        ReflectionAccessError: An object parameter's fields cannot be read.
    """
    args = tuple(args)
    if len(args) != descriptor.arity:
        raise TemplateResolutionError(
            f"Endpoint '{descriptor.endpoint_id}' takes {descriptor.arity} argument(s), "
            f"got {len(args)}"
        )
    configuration = descriptor.configuration
    scope = CallScope(descriptor.variables, args, configuration)

    # 1. URL, verb, encoding and content type
    base_url = descriptor.base_url.render(args, scope) if descriptor.base_url else None
    rendered_url = descriptor.url.render(args, scope)
    request_type = descriptor.type.render(args, scope).strip().upper()
    if not request_type:
        raise TemplateResolutionError(
            f"Endpoint '{descriptor.endpoint_id}': request type rendered blank"
        )
    content_encoding = effective(
        _render_optional(descriptor.content_encoding, args, scope),
        _render_optional(descriptor.base_content_encoding, args, scope),
        configuration.content_encoding,
    )
    content_type = effective(
        _render_optional(descriptor.content_type, args, scope),
        _render_optional(descriptor.base_content_type, args, scope),
        configuration.content_type,
    )

    # 2. URL decomposition
    url = normalize_url(base_url, rendered_url)
    data: list[NameValue] = [*configuration.default_parameters, *url.query_pairs]

    # 3. Named and object parameters
    for parameter in descriptor.named_parameters:
        data.extend(_parameter_pairs(parameter, args[parameter.index], configuration))

    # 4. Body fragments
    body, body_pairs = _render_body(descriptor.data, args, scope)
    data.extend(body_pairs)

    # 5. Headers
    headers = merge_headers(
        _render_headers(descriptor.base_headers, args, scope),
        configuration.default_headers,
        _render_headers(descriptor.headers, args, scope),
    )

    # 6. Timeout and retries
    timeout = effective(
        _render_policy(descriptor.timeout, "timeout", args, scope),
        descriptor.base_timeout,
        configuration.timeout,
    )
    retry_count = effective(
        _render_policy(descriptor.retry_count, "retry count", args, scope),
        descriptor.base_retry_count,
        configuration.retry_count,
    )

    # 7. Callbacks
    slots = descriptor.parameters
    on_success = args[slots.on_success.index] if slots.on_success is not None else None
    on_error = args[slots.on_error.index] if slots.on_error is not None else None

    # 8. Data type
    data_type = _resolve_data_type(
        _render_optional(descriptor.data_type, args, scope), configuration.data_type
    )

    # 9. Interceptors
    interceptors = merge_interceptors(
        descriptor.global_interceptors,
        descriptor.base_interceptors,
        descriptor.interceptors,
    )

    request = RequestDescriptor(
        protocol=url.protocol,
        host_port=url.host_port,
        path=url.path,
        type=request_type,
        query=url.query,
        data=tuple(data),
        body=body,
        headers=headers,
        content_type=content_type,
        content_encoding=content_encoding,
        data_type=data_type,
        timeout=timeout,
        retry_count=retry_count,
        async_=descriptor.async_,
        log_enabled=descriptor.log_enabled,
        interceptors=interceptors,
        key_store=descriptor.key_store,
        on_success=on_success,
        on_error=on_error,
        success_type=descriptor.success_type,
        arguments=args,
        endpoint_id=descriptor.endpoint_id,
    )
    if request.log_enabled:
        logger.debug(f"[{descriptor.endpoint_id}] {request.type} {request.full_url}")
    return request
