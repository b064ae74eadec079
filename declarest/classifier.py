"""
Parameter classification.

Turns the declared parameters of one endpoint into parameter descriptors with a
closed set of roles, plus the map of named variables those parameters expose to
templates. Runs once per endpoint at registration time.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .callbacks import OnError, OnSuccess, is_callback_type, success_payload_type
from .exceptions import ConfigurationError
from .filters import EMPTY_CHAIN, FilterChain, FilterRegistry
from .models import DataObject, DataParam, DataVariable, ParameterInfo
from .scope import MappingVariable

logger = logging.getLogger(__name__)


class ParameterRole(Enum):
    NAMED_FIELD = "named_field"
    NAMED_VARIABLE = "named_variable"
    OBJECT_EXPANSION = "object_expansion"
    OBJECT_JSON = "object_json"
    SUCCESS_CALLBACK = "success_callback"
    ERROR_CALLBACK = "error_callback"
    POSITIONAL = "positional"


REQUEST_FIELD_ROLES = frozenset(
    {ParameterRole.NAMED_FIELD, ParameterRole.OBJECT_EXPANSION, ParameterRole.OBJECT_JSON}
)


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    index: int
    name: str
    role: ParameterRole
    filter_chain: FilterChain = field(default=EMPTY_CHAIN)
    json_field: str | None = None
    annotation: Any = Any

    @property
    def is_object(self) -> bool:
        return self.role in (ParameterRole.OBJECT_EXPANSION, ParameterRole.OBJECT_JSON)

    @property
    def is_json_body(self) -> bool:
        return self.role is ParameterRole.OBJECT_JSON


@dataclass(frozen=True, slots=True)
class ClassifiedParameters:
    parameters: tuple[ParameterInfo, ...]
    descriptors: tuple[ParameterDescriptor, ...]
    named_parameters: tuple[ParameterDescriptor, ...]
    variables: MappingProxyType[str, MappingVariable]
    on_success: ParameterDescriptor | None = None
    on_error: ParameterDescriptor | None = None
    success_type: Any = Any

    @property
    def arity(self) -> int:
        return len(self.parameters)


def _validate_indices(parameters: Sequence[ParameterInfo]) -> None:
    seen: set[int] = set()
    for param in parameters:
        if param.index in seen:
            raise ConfigurationError(f"Duplicate parameter index {param.index} ({param.name})")
        seen.add(param.index)
    if seen and seen != set(range(len(parameters))):
        raise ConfigurationError(
            f"Parameter indices must cover 0..{len(parameters) - 1}, got {sorted(seen)}"
        )


def classify_parameters(
    parameters: Sequence[ParameterInfo],
    filters: FilterRegistry,
) -> ClassifiedParameters:
    """
    Classify declared parameters.

    Rules, applied to every marker found on a parameter:
    - `OnSuccess[...]` / `OnError` annotations become the callback slots.
    - `DataParam` adds a named request field and a variable of the same name.
    - `DataVariable` adds a variable only; its name defaults to the parameter name.
    - `DataObject` adds an object-expansion field, or a JSON-body field when
      `json_param` is given.
    A parameter with none of these stays positional.

    Within one parameter a `DataParam` variable takes precedence over a
    `DataVariable` of the same name. Across parameters the last declaration of a
    name wins.

    Raises:
        UnknownFilterError: If a declared filter name is not registered.
        ConfigurationError: On duplicate or non-contiguous parameter indices.
    """
    ordered = sorted(parameters, key=lambda p: p.index)
    _validate_indices(ordered)

    descriptors: list[ParameterDescriptor] = []
    named: list[ParameterDescriptor] = []
    variables: dict[str, MappingVariable] = {}
    on_success: ParameterDescriptor | None = None
    on_error: ParameterDescriptor | None = None
    success_type: Any = Any

    for param in ordered:
        roles_before = len(descriptors)

        if is_callback_type(param.annotation, OnSuccess):
            on_success = ParameterDescriptor(
                param.index, param.name, ParameterRole.SUCCESS_CALLBACK, annotation=param.annotation
            )
            success_type = success_payload_type(param.annotation)
            descriptors.append(on_success)
        elif is_callback_type(param.annotation, OnError):
            on_error = ParameterDescriptor(
                param.index, param.name, ParameterRole.ERROR_CALLBACK, annotation=param.annotation
            )
            descriptors.append(on_error)

        own_variables: dict[str, MappingVariable] = {}
        field_variables: dict[str, MappingVariable] = {}
        for marker in param.markers:
            chain = filters.resolve_chain(marker.filter)
            if isinstance(marker, DataParam):
                name = marker.name or param.name
                descriptor = ParameterDescriptor(
                    param.index,
                    name,
                    ParameterRole.NAMED_FIELD,
                    filter_chain=chain,
                    annotation=param.annotation,
                )
                descriptors.append(descriptor)
                named.append(descriptor)
                field_variables[name] = MappingVariable(name, param.index, param.annotation, chain)
            elif isinstance(marker, DataVariable):
                name = marker.name or param.name
                own_variables[name] = MappingVariable(name, param.index, param.annotation, chain)
                descriptors.append(
                    ParameterDescriptor(
                        param.index,
                        name,
                        ParameterRole.NAMED_VARIABLE,
                        filter_chain=chain,
                        annotation=param.annotation,
                    )
                )
            elif isinstance(marker, DataObject):
                is_json = bool(marker.json_param)
                descriptor = ParameterDescriptor(
                    param.index,
                    param.name,
                    ParameterRole.OBJECT_JSON if is_json else ParameterRole.OBJECT_EXPANSION,
                    filter_chain=chain,
                    json_field=marker.json_param or None,
                    annotation=param.annotation,
                )
                descriptors.append(descriptor)
                named.append(descriptor)

        own_variables.update(field_variables)
        for name, variable in own_variables.items():
            if name in variables:
                logger.debug(
                    f"Variable '{name}' redeclared by parameter {param.index}; replacing "
                    f"binding to parameter {variables[name].index}"
                )
            variables[name] = variable

        if len(descriptors) == roles_before:
            descriptors.append(
                ParameterDescriptor(
                    param.index, param.name, ParameterRole.POSITIONAL, annotation=param.annotation
                )
            )

    return ClassifiedParameters(
        parameters=tuple(ordered),
        descriptors=tuple(descriptors),
        named_parameters=tuple(named),
        variables=MappingProxyType(variables),
        on_success=on_success,
        on_error=on_error,
        success_type=success_type,
    )
