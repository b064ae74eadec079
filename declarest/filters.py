"""
Parameter filters and filter chains.

A filter transforms a parameter value before it is placed into a request. Filters
are declared by name on a parameter marker (``DataParam("q", filter="trim, urlencode")``),
resolved once against the configuration's `FilterRegistry` when the endpoint is
registered, and then reused for every call.

Example:
    registry = default_filter_registry()
    registry.register("reverse", lambda value, configuration: value[::-1])
    chain = registry.resolve_chain("trim, reverse")
    chain.apply("  abc ", configuration)  # "cba"
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import quote

from .exceptions import ConfigurationError, UnknownFilterError
from .templates import to_text

if TYPE_CHECKING:
    from .config import Configuration


class Filter(Protocol):
    def __call__(self, value: Any, configuration: Configuration) -> Any: ...


# =============================================================================
# Built-in Filters
# =============================================================================


def json_filter(value: Any, configuration: Configuration) -> Any:
    """Serialize the value to JSON text with the configured converter."""
    if value is None:
        return None
    return configuration.json_converter.to_json(value)


def urlencode_filter(value: Any, configuration: Configuration) -> Any:
    """Percent-encode the textual form of the value."""
    if value is None:
        return None
    return quote(to_text(value), safe="")


def _string_filter(transform: Callable[[str], str]) -> Filter:
    def _apply(value: Any, configuration: Configuration) -> Any:
        if isinstance(value, str):
            return transform(value)
        return value

    return _apply


BUILTIN_FILTERS: Mapping[str, Filter] = {
    "json": json_filter,
    "urlencode": urlencode_filter,
    "trim": _string_filter(str.strip),
    "upper": _string_filter(str.upper),
    "lower": _string_filter(str.lower),
}


# =============================================================================
# Filter Chain
# =============================================================================


@dataclass(frozen=True, slots=True)
class FilterChain:
    """Ordered, immutable sequence of named filters."""

    filters: tuple[tuple[str, Filter], ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.filters)

    @property
    def is_empty(self) -> bool:
        return not self.filters

    def apply(self, value: Any, configuration: Configuration) -> Any:
        """Run every filter in declaration order, feeding each the previous output."""
        for _, flt in self.filters:
            value = flt(value, configuration)
        return value

    def __len__(self) -> int:
        return len(self.filters)

    def __iter__(self) -> Iterator[tuple[str, Filter]]:
        return iter(self.filters)


EMPTY_CHAIN = FilterChain()


def split_filter_names(declaration: str | Iterable[str] | None) -> list[str]:
    """Split a comma-separated filter declaration into clean names."""
    if not declaration:
        return []
    raw = declaration.split(",") if isinstance(declaration, str) else list(declaration)
    return [name.strip() for name in raw if name and name.strip()]


# =============================================================================
# Filter Registry
# =============================================================================


class FilterRegistry:
    """
    Registry mapping filter names to filters.

    Entries may be filter callables or zero-argument classes; classes are
    instantiated once per resolution. The registry is populated while a
    configuration is being built and only read afterwards.
    """

    def __init__(self, filters: Mapping[str, Filter | type] | None = None):
        self._filters: dict[str, Filter | type] = {}
        if filters:
            for name, flt in filters.items():
                self.register(name, flt)

    def register(self, name: str, flt: Filter | type) -> None:
        name = name.strip()
        if not name:
            raise ConfigurationError("Filter name must not be blank")
        if not callable(flt):
            raise ConfigurationError(f"Filter '{name}' is not callable: {flt!r}")
        self._filters[name] = flt

    def copy(self) -> FilterRegistry:
        return FilterRegistry(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __len__(self) -> int:
        return len(self._filters)

    @property
    def names(self) -> list[str]:
        return sorted(self._filters)

    def get(self, name: str) -> Filter:
        """
        Return a ready-to-use filter for `name`.

        Raises:
            UnknownFilterError: If the name is not registered.
        """
        entry = self._filters.get(name)
        if entry is None:
            raise UnknownFilterError(
                f"Unknown filter '{name}'. Registered filters: {', '.join(self.names) or '(none)'}",
                filter_name=name,
            )
        if isinstance(entry, type):
            try:
                return entry()
            except TypeError as e:
                raise ConfigurationError(
                    f"Filter class {entry.__qualname__} for '{name}' cannot be instantiated",
                    cause=e,
                ) from e
        return entry

    def resolve_chain(self, declaration: str | Iterable[str] | None) -> FilterChain:
        """Resolve a comma-separated declaration into a `FilterChain`."""
        names = split_filter_names(declaration)
        if not names:
            return EMPTY_CHAIN
        return FilterChain(tuple((name, self.get(name)) for name in names))


def default_filter_registry() -> FilterRegistry:
    """A new registry preloaded with the built-in filters."""
    return FilterRegistry(BUILTIN_FILTERS)
