"""
Endpoint metadata supplied by the declaring layer.

`RequestSpec` and `InterfaceSpec` hold raw, uncompiled template strings and
policy values; `ParameterInfo` describes one declared parameter with its
markers. These are the inputs to `build_method_descriptor`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Parameter Markers
# =============================================================================


@dataclass(frozen=True, slots=True)
class DataParam:
    """
    Bind a parameter to a named request field.

    The parameter is also available to templates as `${name}`.

    Example:
        def search(self, q: Annotated[str, DataParam("q", filter="trim")]) -> None: ...
    """

    name: str
    filter: str = ""


@dataclass(frozen=True, slots=True)
class DataVariable:
    """Expose a parameter to templates without adding a request field."""

    name: str = ""
    filter: str = ""


@dataclass(frozen=True, slots=True)
class DataObject:
    """
    Expand an object parameter into request fields.

    With `json_param`, the whole object is serialized to JSON under that field
    name instead.
    """

    json_param: str = ""
    filter: str = ""


Marker = DataParam | DataVariable | DataObject

MARKER_TYPES = (DataParam, DataVariable, DataObject)


@dataclass(frozen=True, slots=True)
class ParameterInfo:
    """One declared parameter as supplied by the declaring layer."""

    index: int
    name: str
    annotation: Any = Any
    markers: tuple[Marker, ...] = ()


# =============================================================================
# Request / Interface Specs
# =============================================================================


class _SpecModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


class RequestSpec(_SpecModel):
    """Per-endpoint request declaration."""

    url: str
    type: str = "GET"
    data_type: str = ""
    content_type: str = ""
    content_encoding: str = ""
    data: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()
    timeout: int | str | None = None
    retry_count: int | str | None = None
    interceptors: tuple[Any, ...] = ()
    key_store: str = ""
    async_: bool = Field(False, alias="async")
    log_enabled: bool = False

    @field_validator("data", "headers", mode="before")
    @classmethod
    def _single_string_as_tuple(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value


class InterfaceSpec(_SpecModel):
    """Settings shared by every endpoint declared on one interface."""

    base_url: str = ""
    headers: tuple[str, ...] = ()
    interceptors: tuple[Any, ...] = ()
    timeout: int | None = None
    retry_count: int | None = None
    content_type: str = ""
    content_encoding: str = ""

    @field_validator("headers", mode="before")
    @classmethod
    def _single_string_as_tuple(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value
