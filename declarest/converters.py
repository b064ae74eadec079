"""
Value converters: JSON serialization and object-field enumeration.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

import pydantic_core
from pydantic import BaseModel

from .exceptions import ReflectionAccessError, SerializationError

FieldAdapter = Callable[[Any], Iterable[tuple[str, Any]]]


class JsonConverter(Protocol):
    def to_json(self, obj: Any) -> str: ...


class PydanticJsonConverter:
    """
    JSON converter backed by pydantic-core.

    Handles pydantic models, dataclasses, datetimes, enums and plain containers
    without a custom encoder.
    """

    def __init__(self, *, by_alias: bool = True, exclude_none: bool = False):
        self.by_alias = by_alias
        self.exclude_none = exclude_none

    def to_json(self, obj: Any) -> str:
        try:
            data = pydantic_core.to_json(
                obj,
                by_alias=self.by_alias,
                exclude_none=self.exclude_none,
            )
        except pydantic_core.PydanticSerializationError as e:
            raise SerializationError(
                f"Cannot serialize {type(obj).__name__} to JSON: {e}", cause=e
            ) from e
        return data.decode("utf-8")

    def __repr__(self) -> str:
        return f"PydanticJsonConverter(by_alias={self.by_alias}, exclude_none={self.exclude_none})"


# =============================================================================
# Object Field Enumeration
# =============================================================================


def _lookup_adapter(obj: Any, adapters: Mapping[type, FieldAdapter]) -> FieldAdapter | None:
    for klass in type(obj).__mro__:
        adapter = adapters.get(klass)
        if adapter is not None:
            return adapter
    return None


def _model_fields(obj: BaseModel) -> Iterable[tuple[str, Any]]:
    for name, info in type(obj).model_fields.items():
        yield info.alias or name, getattr(obj, name)


def _dataclass_fields(obj: Any) -> Iterable[tuple[str, Any]]:
    for f in dataclasses.fields(obj):
        yield f.name, getattr(obj, f.name)


def _select_enumerator(
    obj: Any, adapters: Mapping[type, FieldAdapter]
) -> Callable[[Any], Iterable[tuple[str, Any]]]:
    adapter = _lookup_adapter(obj, adapters)
    if adapter is not None:
        return adapter
    own = getattr(type(obj), "__request_fields__", None)
    if own is not None:
        return own
    if isinstance(obj, BaseModel):
        return _model_fields
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _dataclass_fields
    if isinstance(obj, Mapping):
        return lambda o: ((str(k), v) for k, v in o.items())
    raise ReflectionAccessError(
        f"No field enumeration available for {type(obj).__qualname__}; register a field "
        "adapter, define __request_fields__(), or use a pydantic model, dataclass or mapping"
    )


def iter_object_fields(
    obj: Any,
    adapters: Mapping[type, FieldAdapter] | None = None,
) -> list[tuple[str, Any]]:
    """
    Enumerate `(name, value)` pairs for an object parameter.

    Lookup order: a registered adapter for the object's type (or a base class),
    the type's own `__request_fields__()` method, pydantic models (alias names),
    dataclasses, then mappings.

    Raises:
        ReflectionAccessError: No enumeration is available, or reading a field failed.
    """
    if obj is None:
        return []
    enumerate_fields = _select_enumerator(obj, adapters or {})
    try:
        return [(str(name), value) for name, value in enumerate_fields(obj)]
    except ReflectionAccessError:
        raise
    except Exception as e:
        raise ReflectionAccessError(
            f"Failed to read fields of {type(obj).__qualname__}: {type(e).__name__}: {e}",
            cause=e,
        ) from e
